"""
User accounts scoped to an owning app.
"""
