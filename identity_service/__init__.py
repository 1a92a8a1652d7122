"""
Multi-tenant user identity service.
"""
