"""
User persistence.

UserRepository wraps an AsyncSession and is also the credential store used
by the authentication flow.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from identity_service.auth.service import CredentialRecord
from identity_service.users.models import User

logger = logging.getLogger(__name__)


def to_credential_record(user: User) -> CredentialRecord:
    return CredentialRecord(
        id=user.id,
        identifier=user.email,
        secret_digest=user.password,
        status=user.status,
    )


class UserRepository:
    """
    Database operations for users.

    "Not found" is logged as a warning and returned as None; database
    errors are logged and re-raised.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fetch_one(self, query, **log_context) -> Optional[User]:
        try:
            result = await self.db.execute(query.execution_options(populate_existing=True))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error: failed to get user | %s error=%s", log_context, e)
            raise
        if user is None:
            logger.warning("User not found in database | %s", log_context)
        return user

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await self._fetch_one(select(User).where(User.id == user_id), id=user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        return await self._fetch_one(select(User).where(User.email == email), email=email)

    async def email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        query = select(User.id).where(User.email == email)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        result = await self.db.execute(query)
        return result.first() is not None

    async def list_all(self) -> List[User]:
        try:
            result = await self.db.execute(select(User).order_by(User.id))
        except SQLAlchemyError as e:
            logger.error("Database error: failed to list users | error=%s", e)
            raise
        return list(result.scalars().all())

    async def create(self, user: User) -> User:
        email = user.email
        try:
            self.db.add(user)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Database error: failed to create user | email=%s error=%s", email, e)
            raise
        # Reload so the app relationship is populated
        return await self.get_by_id(user.id)

    async def save(self, user: User) -> User:
        user_id = user.id
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Database error: failed to update user | id=%s error=%s", user_id, e)
            raise
        return await self.get_by_id(user_id)

    async def delete(self, user: User) -> None:
        user_id = user.id
        try:
            await self.db.delete(user)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Database error: failed to delete user | id=%s error=%s", user_id, e)
            raise

    # --- CredentialStore ---

    async def find_by_identifier(self, identifier: str) -> Optional[CredentialRecord]:
        user = await self.get_by_email(identifier)
        return to_credential_record(user) if user is not None else None

    async def find_by_id(self, id: int) -> Optional[CredentialRecord]:
        user = await self.get_by_id(id)
        return to_credential_record(user) if user is not None else None
