"""
Authentication error taxonomy.

Internal errors are fine-grained for diagnostics; routers collapse them into
two user-facing kinds (unauthenticated / invalid credentials) plus a generic
server error for infrastructure failures.
"""


class AuthError(Exception):
    """Base class for all authentication errors."""


class UnauthenticatedError(AuthError):
    """Request carried no usable credentials. `reason` is for logs only."""

    MISSING_HEADER = "missing_header"
    MALFORMED_HEADER = "malformed_header"
    INVALID_TOKEN = "invalid_token"

    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason}: {detail}" if detail else reason)


class InvalidCredentialsError(AuthError):
    """Unknown identifier or wrong secret. Both cases share one message."""

    def __init__(self):
        super().__init__("invalid credentials")


class InfrastructureError(AuthError):
    """Hashing engine, signing or credential store failure."""


class PasswordHashError(InfrastructureError):
    """The password hashing engine failed or the stored digest is unusable."""


class TokenSigningError(InfrastructureError):
    """A token could not be serialized or signed."""


class TokenError(AuthError):
    """Token rejected during verification."""


class InvalidSignatureError(TokenError):
    """Token signature does not match the signing secret."""


class ExpiredTokenError(TokenError):
    """Token is past its expiry instant."""


class MalformedTokenError(TokenError):
    """Token cannot be decoded or its claims are structurally invalid."""
