"""
Authentication core for the identity service.

This module provides authentication and authorization services:
- Password hashing and verification
- JWT token issuance and verification
- Bearer-token gate for protected routes
- Login flow combining the above
"""
