"""
JWT token handling for authentication.

This module provides functionality for:
- Issuing signed, expiring identity tokens
- Verifying tokens and decoding their claims

Tokens are compact HS256 JWTs carrying three claims:
- sub: account identifier the token vouches for
- iat: issued-at timestamp
- exp: expiration timestamp (a token is valid while iat <= now < exp)
"""
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional, Union

import jwt
from jwt.exceptions import (
    InvalidSignatureError as JWTInvalidSignatureError,
    InvalidTokenError,
)

from identity_service.auth.errors import (
    ExpiredTokenError,
    InvalidSignatureError,
    MalformedTokenError,
    TokenSigningError,
)

ALGORITHM = "HS256"
DEFAULT_TOKEN_TTL = timedelta(hours=24)
REQUIRED_CLAIMS = ["sub", "iat", "exp"]

TTL = Union[timedelta, int]


@dataclass(frozen=True)
class TokenClaims:
    """Verified token payload."""
    subject_id: str
    issued_at: int
    expires_at: int


def _ttl_seconds(ttl: TTL) -> int:
    seconds = int(ttl.total_seconds()) if isinstance(ttl, timedelta) else int(ttl)
    if seconds <= 0:
        raise ValueError("Token TTL must be positive")
    return seconds


def issue_token(
    subject_id: str,
    secret: str,
    ttl: TTL = DEFAULT_TOKEN_TTL,
    now: Optional[float] = None,
) -> str:
    """
    Create a signed JWT for a subject.

    Args:
        subject_id: Account identifier stored in the 'sub' claim
        secret: Signing secret
        ttl: Token lifetime
        now: Issue instant as a Unix timestamp, defaults to the current time

    Returns:
        Encoded JWT token string

    Raises:
        ValueError: If the TTL is not positive
        TokenSigningError: If the claims cannot be serialized or signed
    """
    issued_at = int(now if now is not None else time.time())
    payload = {
        "sub": str(subject_id),
        "iat": issued_at,
        "exp": issued_at + _ttl_seconds(ttl),
    }
    try:
        return jwt.encode(payload, secret, algorithm=ALGORITHM)
    except Exception as e:
        raise TokenSigningError(f"Token signing failed: {e.__class__.__name__}") from e


def verify_token(token: str, secret: str, now: Optional[float] = None) -> TokenClaims:
    """
    Verify a JWT token and return its claims.

    The signature is checked before any claim, so a forged token is always
    reported as a signature failure. Claim structure is checked before the
    time window, so a token whose expiry precedes its issue time is malformed
    rather than expired.

    Args:
        token: JWT token string
        secret: Signing secret the token must have been issued with
        now: Verification instant as a Unix timestamp, defaults to the current time

    Returns:
        TokenClaims of the verified token

    Raises:
        InvalidSignatureError: If the signature does not match
        ExpiredTokenError: If the token has expired
        MalformedTokenError: If the token or its claims are invalid
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            # iat and exp are checked below against the caller's clock
            options={"require": REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
        )
    except JWTInvalidSignatureError as e:
        raise InvalidSignatureError("Token signature verification failed") from e
    except InvalidTokenError as e:
        raise MalformedTokenError(f"Invalid token: {e}") from e

    subject_id = payload["sub"]
    issued_at = payload["iat"]
    expires_at = payload["exp"]

    if not isinstance(subject_id, str) or not subject_id:
        raise MalformedTokenError("Invalid token: subject must be a non-empty string")
    if not isinstance(issued_at, int) or not isinstance(expires_at, int):
        raise MalformedTokenError("Invalid token: timestamps must be integers")
    if expires_at <= issued_at:
        raise MalformedTokenError("Invalid token: expires before it was issued")

    current = int(now if now is not None else time.time())
    if issued_at > current:
        raise MalformedTokenError("Invalid token: issued in the future")
    if current >= expires_at:
        raise ExpiredTokenError("Token has expired")

    return TokenClaims(subject_id=subject_id, issued_at=issued_at, expires_at=expires_at)


class TokenManager:
    """
    Issues and verifies tokens with a secret fixed at construction.

    Args:
        secret: Process-wide signing secret
        ttl: Default token lifetime
        clock: Source of the current Unix time, used both to stamp new
            tokens and to check their validity window
    """

    def __init__(
        self,
        secret: str,
        ttl: TTL = DEFAULT_TOKEN_TTL,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self.ttl = timedelta(seconds=_ttl_seconds(ttl))
        self._clock = clock

    def issue(self, subject_id: str, ttl: Optional[TTL] = None) -> str:
        return issue_token(
            subject_id,
            self._secret,
            ttl if ttl is not None else self.ttl,
            now=self._clock(),
        )

    def verify(self, token: str) -> TokenClaims:
        return verify_token(token, self._secret, now=self._clock())
