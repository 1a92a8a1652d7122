"""
User management service.

This module provides functionality for:
- User creation with hashed passwords
- User lookup and listing
- Partial user updates (including password changes)
- User deletion
"""
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from starlette.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from identity_service.apps.models import App
from identity_service.apps.service import AppService
from identity_service.auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from identity_service.users.models import User
from identity_service.users.repository import UserRepository

MIN_PASSWORD_LENGTH = 8


def _check_password(v: Optional[str]) -> Optional[str]:
    if v is not None and len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return v


# Pydantic models for request validation
class UserCreate(BaseModel):
    """Model for user creation."""
    app_id: int
    firstname: str = Field(..., min_length=1)
    lastname: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)

    @field_validator("password")
    @classmethod
    def password_fits_hasher(cls, v):
        return _check_password(v)


class UserUpdate(BaseModel):
    """Model for updating a user; unset fields are left alone."""
    app_id: Optional[int] = None
    firstname: Optional[str] = Field(None, min_length=1)
    lastname: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=MIN_PASSWORD_LENGTH)
    status: Optional[int] = None

    @field_validator("password")
    @classmethod
    def password_fits_hasher(cls, v):
        return _check_password(v)


class AuthRequest(BaseModel):
    """Model for user login."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserOut(BaseModel):
    """Model for user information returned to clients."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    app_id: int
    app_name: Optional[str] = None
    firstname: str
    lastname: str
    email: str
    status: int
    created_at: datetime
    updated_at: datetime


class AuthResponse(BaseModel):
    """Model for a successful login."""
    token: str
    user: UserOut


class UserService:
    """
    Service for user management operations.
    """
    def __init__(self, db: AsyncSession, hasher: PasswordHasher):
        self.db = db
        self.repo = UserRepository(db)
        self.hasher = hasher

    async def _hash(self, password: str) -> str:
        return await run_in_threadpool(self.hasher.hash, password)

    async def _ensure_app_exists(self, app_id: int):
        if await AppService.get_app(app_id, self.db) is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="App not found"
            )

    async def _ensure_email_free(self, email: str, exclude_id: Optional[int] = None):
        if await self.repo.email_taken(email, exclude_id=exclude_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

    async def create_user(self, user_data: UserCreate) -> UserOut:
        """
        Create a new user.

        Args:
            user_data: User creation data

        Returns:
            Created user information

        Raises:
            HTTPException: If the app does not exist or the email is taken
        """
        await self._ensure_app_exists(user_data.app_id)
        await self._ensure_email_free(user_data.email)

        user = User(
            app_id=user_data.app_id,
            firstname=user_data.firstname,
            lastname=user_data.lastname,
            email=user_data.email,
            password=await self._hash(user_data.password),
            status=1,
        )
        created = await self.repo.create(user)
        return UserOut.model_validate(created)

    async def get_user_by_id(self, user_id: int) -> Optional[UserOut]:
        user = await self.repo.get_by_id(user_id)
        if user is None:
            return None
        return UserOut.model_validate(user)

    async def list_users(self) -> List[UserOut]:
        return [UserOut.model_validate(u) for u in await self.repo.list_all()]

    async def update_user(self, user_id: int, update_data: UserUpdate) -> Optional[UserOut]:
        """
        Update user information.

        Args:
            user_id: User ID
            update_data: Data to update

        Returns:
            Updated user information or None if not found
        """
        user = await self.repo.get_by_id(user_id)
        if user is None:
            return None

        if update_data.app_id is not None and update_data.app_id != user.app_id:
            await self._ensure_app_exists(update_data.app_id)
            user.app_id = update_data.app_id

        if update_data.email is not None and update_data.email != user.email:
            await self._ensure_email_free(update_data.email, exclude_id=user_id)
            user.email = update_data.email

        if update_data.firstname is not None:
            user.firstname = update_data.firstname
        if update_data.lastname is not None:
            user.lastname = update_data.lastname
        if update_data.status is not None:
            user.status = update_data.status

        # Update password if provided
        if update_data.password is not None:
            user.password = await self._hash(update_data.password)

        updated = await self.repo.save(user)
        return UserOut.model_validate(updated)

    async def delete_user(self, user_id: int) -> bool:
        user = await self.repo.get_by_id(user_id)
        if user is None:
            return False
        await self.repo.delete(user)
        return True

    async def set_password(self, email: str, new_password: str) -> bool:
        """Replace the password of the user with this email. False if no such user."""
        # Same length rules as the API; raises pydantic.ValidationError
        new_password = UserUpdate(password=new_password).password
        user = await self.repo.get_by_email(email)
        if user is None:
            return False
        user.password = await self._hash(new_password)
        await self.repo.save(user)
        return True


# Seed an initial app and admin account on startup
async def init_default_account(
    db: AsyncSession,
    hasher: PasswordHasher,
    app_name: str,
    email: str,
    password: str,
) -> bool:
    """
    Create the bootstrap app and admin user if they do not exist.

    Returns:
        True if the admin user was created, False if it already existed
    """
    result = await db.execute(select(App).where(App.name == app_name))
    app = result.scalar_one_or_none()
    if app is None:
        app = App(name=app_name)
        db.add(app)
        await db.flush()

    service = UserService(db, hasher)
    if await service.repo.email_taken(email):
        await db.commit()
        return False

    await service.create_user(UserCreate(
        app_id=app.id,
        firstname="Admin",
        lastname="User",
        email=email,
        password=password,
    ))
    return True
