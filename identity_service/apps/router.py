"""
App router.

All app endpoints are protected by the authorization gate.
"""
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from identity_service.apps.service import AppCreate, AppService, AppUpdate
from identity_service.auth.middleware import AuthorizationGate, VerifiedIdentity
from identity_service.base_microservice import BaseMicroservice
from identity_service.database import get_db_session

base_service = BaseMicroservice("identity_service.apps")


def _server_error(e: Exception, context: str) -> HTTPException:
    base_service.log_error(e, context=context)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error"
    )


def create_app_router(gate: AuthorizationGate) -> APIRouter:
    """
    Build the /apps router.

    Args:
        gate: Authorization gate applied to every route

    Returns:
        APIRouter with app CRUD endpoints
    """
    router = APIRouter(prefix="/apps", tags=["apps"], dependencies=[Depends(gate)])

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_app(
        app_data: AppCreate,
        identity: VerifiedIdentity = Depends(gate),
        db: AsyncSession = Depends(get_db_session)
    ):
        """Create a new app."""
        try:
            app = await AppService.create_app(app_data, db)
            base_service.log_event("app.created", {
                "id": app.id,
                "name": app.name,
                "by": identity.subject_id
            })
            return base_service.mcp_response(
                data=app,
                message="App created successfully",
                status_code=status.HTTP_201_CREATED
            )
        except HTTPException:
            raise
        except Exception as e:
            raise _server_error(e, "Create app")

    @router.get("")
    async def list_apps(db: AsyncSession = Depends(get_db_session)):
        """List all apps."""
        try:
            apps = await AppService.list_apps(db)
            return base_service.mcp_response(data=apps, message="Apps retrieved successfully")
        except Exception as e:
            raise _server_error(e, "List apps")

    @router.get("/{app_id}")
    async def get_app(app_id: int, db: AsyncSession = Depends(get_db_session)):
        """Get a single app by ID."""
        try:
            app = await AppService.get_app_by_id(app_id, db)
        except Exception as e:
            raise _server_error(e, "Get app")

        if app is None:
            base_service.log_warning("app.not_found", {"id": app_id})
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="App not found")

        return base_service.mcp_response(data=app, message="App retrieved successfully")

    @router.put("/{app_id}")
    async def update_app(
        app_id: int,
        update_data: AppUpdate,
        identity: VerifiedIdentity = Depends(gate),
        db: AsyncSession = Depends(get_db_session)
    ):
        """Update an app."""
        try:
            app = await AppService.update_app(app_id, update_data, db)
        except HTTPException:
            raise
        except Exception as e:
            raise _server_error(e, "Update app")

        if app is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="App not found")

        base_service.log_event("app.updated", {
            "id": app_id,
            "fields_updated": list(update_data.model_dump(exclude_unset=True).keys()),
            "by": identity.subject_id
        })
        return base_service.mcp_response(data=app, message="App updated successfully")

    @router.delete("/{app_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_app(
        app_id: int,
        identity: VerifiedIdentity = Depends(gate),
        db: AsyncSession = Depends(get_db_session)
    ):
        """Delete an app together with its users."""
        try:
            deleted = await AppService.delete_app(app_id, db)
        except Exception as e:
            raise _server_error(e, "Delete app")

        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="App not found")

        base_service.log_event("app.deleted", {"id": app_id, "by": identity.subject_id})
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router
