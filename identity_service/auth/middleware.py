"""
Authorization gate for protected routes.

The gate is a FastAPI dependency: attach it to a router or a route and every
request must carry `Authorization: Bearer <token>` with a valid token before
the handler runs. The verified identity is returned to the handler and kept
on `request.state.identity` for the rest of the request.

All rejections look the same to the caller (401 "Unauthorized"); the
specific reason is only logged.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request, status

from identity_service.auth.errors import TokenError, UnauthenticatedError
from identity_service.auth.jwt import TokenClaims, TokenManager

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


@dataclass(frozen=True)
class VerifiedIdentity:
    """Identity attached to a request after its token was verified."""
    subject_id: str
    issued_at: int
    expires_at: int

    @property
    def user_id(self) -> int:
        return int(self.subject_id)

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> "VerifiedIdentity":
        return cls(
            subject_id=claims.subject_id,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
        )


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an Authorization header value.

    The header must be exactly two fields separated by a single space, the
    first being "bearer" in any case.

    Raises:
        UnauthenticatedError: If the header is absent or malformed
    """
    if not authorization:
        raise UnauthenticatedError(UnauthenticatedError.MISSING_HEADER)

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != BEARER_SCHEME or not parts[1]:
        raise UnauthenticatedError(UnauthenticatedError.MALFORMED_HEADER)

    return parts[1]


class AuthorizationGate:
    """
    Request gate that admits only requests with a valid bearer token.

    Usage:
        gate = AuthorizationGate(token_manager)
        router = APIRouter(dependencies=[Depends(gate)])

        @router.get("/me")
        async def me(identity: VerifiedIdentity = Depends(gate)): ...
    """

    def __init__(self, token_manager: TokenManager):
        self.token_manager = token_manager

    def authenticate(self, authorization: Optional[str]) -> VerifiedIdentity:
        """
        Verify an Authorization header value.

        Raises:
            UnauthenticatedError: With the internal rejection reason
        """
        token = extract_bearer_token(authorization)
        try:
            claims = self.token_manager.verify(token)
        except TokenError as e:
            raise UnauthenticatedError(
                UnauthenticatedError.INVALID_TOKEN, e.__class__.__name__
            ) from e
        return VerifiedIdentity.from_claims(claims)

    async def __call__(self, request: Request) -> VerifiedIdentity:
        # Dependencies are cached per request, so this runs once even when
        # the gate is declared on both the router and the route.
        try:
            identity = self.authenticate(request.headers.get("Authorization"))
        except UnauthenticatedError as e:
            logger.warning(
                "Unauthorized request rejected: %s | path=%s client=%s",
                e,
                request.url.path,
                request.client.host if request.client else None,
            )
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
                headers={"WWW-Authenticate": "Bearer"},
            )

        request.state.identity = identity
        return identity
