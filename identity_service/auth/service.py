"""
Authentication flow.

Looks up the stored credentials, verifies the password and issues a token.
This is the only place the password hasher and the token manager meet.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from starlette.concurrency import run_in_threadpool

from identity_service.auth.errors import (
    InfrastructureError,
    InvalidCredentialsError,
)
from identity_service.auth.jwt import TokenManager
from identity_service.auth.passwords import PasswordHasher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialRecord:
    """Stored credentials of an account. The digest is never logged."""
    id: int
    identifier: str
    secret_digest: str = field(repr=False)
    status: int = 1


class CredentialStore(Protocol):
    """
    Read-only access to stored credentials.

    Lookups return None when the account does not exist; any exception
    raised is treated as an infrastructure failure.
    """

    async def find_by_identifier(self, identifier: str) -> Optional[CredentialRecord]:
        ...

    async def find_by_id(self, id: int) -> Optional[CredentialRecord]:
        ...


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful login."""
    subject_id: str
    token: str
    record: CredentialRecord


class Authenticator:
    """
    Orchestrates credential lookup, password verification and token issuance.

    Unknown identifiers and wrong passwords fail with the same
    InvalidCredentialsError; the logs keep them apart.
    """

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        token_manager: TokenManager,
    ):
        self.store = store
        self.hasher = hasher
        self.token_manager = token_manager

    async def authenticate(self, identifier: str, secret: str) -> AuthResult:
        """
        Authenticate an account and issue a token.

        Args:
            identifier: Login identifier (email)
            secret: Plaintext password

        Returns:
            AuthResult with the subject id and a fresh token

        Raises:
            InvalidCredentialsError: If the identifier is unknown or the password is wrong
            InfrastructureError: If the store, hashing engine or signer fails
        """
        try:
            record = await self.store.find_by_identifier(identifier)
        except Exception as e:
            logger.error(
                "Authentication aborted: credential store failure (%s) | identifier=%s",
                e.__class__.__name__,
                identifier,
            )
            raise InfrastructureError("Credential store unavailable") from e

        if record is None:
            # Burn the same time as a real check before failing
            await run_in_threadpool(self.hasher.verify_dummy, secret)
            logger.warning("Authentication failed: user not found | identifier=%s", identifier)
            raise InvalidCredentialsError()

        # PasswordHashError is already an InfrastructureError
        matched = await run_in_threadpool(self.hasher.verify, secret, record.secret_digest)
        if not matched:
            logger.warning(
                "Authentication failed: invalid password | identifier=%s id=%s",
                identifier,
                record.id,
            )
            raise InvalidCredentialsError()

        subject_id = str(record.id)
        token = self.token_manager.issue(subject_id)

        logger.info("User authenticated | id=%s identifier=%s", record.id, identifier)
        return AuthResult(subject_id=subject_id, token=token, record=record)
