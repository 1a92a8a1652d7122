"""
App management service.

This module provides functionality for:
- App (tenant) creation
- App lookup and listing
- App updates and deletion
"""
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from identity_service.apps.models import App


class AppCreate(BaseModel):
    """Model for app creation."""
    name: str = Field(..., min_length=1, max_length=100)
    status: int = 1


class AppUpdate(BaseModel):
    """Model for updating an app."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    status: Optional[int] = None


class AppOut(BaseModel):
    """Model for app information returned to clients."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    status: int
    created_at: datetime
    updated_at: datetime


class AppService:
    """
    Service for app management operations.
    """
    @staticmethod
    async def get_app(app_id: int, db: AsyncSession) -> Optional[App]:
        result = await db.execute(select(App).where(App.id == app_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def _ensure_name_free(name: str, db: AsyncSession, exclude_id: Optional[int] = None):
        query = select(App).where(App.name == name)
        if exclude_id is not None:
            query = query.where(App.id != exclude_id)
        result = await db.execute(query)
        if result.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="App name already registered"
            )

    @staticmethod
    async def create_app(app_data: AppCreate, db: AsyncSession) -> AppOut:
        """
        Create a new app.

        Raises:
            HTTPException: If the name is already taken
        """
        await AppService._ensure_name_free(app_data.name, db)

        app = App(name=app_data.name, status=app_data.status)
        db.add(app)
        await db.commit()
        await db.refresh(app)

        return AppOut.model_validate(app)

    @staticmethod
    async def get_app_by_id(app_id: int, db: AsyncSession) -> Optional[AppOut]:
        app = await AppService.get_app(app_id, db)
        if app is None:
            return None
        return AppOut.model_validate(app)

    @staticmethod
    async def list_apps(db: AsyncSession) -> List[AppOut]:
        result = await db.execute(select(App).order_by(App.id))
        return [AppOut.model_validate(app) for app in result.scalars().all()]

    @staticmethod
    async def update_app(app_id: int, update_data: AppUpdate, db: AsyncSession) -> Optional[AppOut]:
        """
        Update app information.

        Args:
            app_id: App ID
            update_data: Fields to change; unset fields are left alone
            db: Database session

        Returns:
            Updated app information or None if not found
        """
        app = await AppService.get_app(app_id, db)
        if app is None:
            return None

        if update_data.name is not None and update_data.name != app.name:
            await AppService._ensure_name_free(update_data.name, db, exclude_id=app_id)
            app.name = update_data.name

        if update_data.status is not None:
            app.status = update_data.status

        await db.commit()
        await db.refresh(app)

        return AppOut.model_validate(app)

    @staticmethod
    async def delete_app(app_id: int, db: AsyncSession) -> bool:
        """Delete an app and, through the foreign key, all of its users."""
        app = await AppService.get_app(app_id, db)
        if app is None:
            return False

        await db.delete(app)
        await db.commit()
        return True
