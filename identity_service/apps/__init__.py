"""
Apps (tenants) that own user accounts.
"""
