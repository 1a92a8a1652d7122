"""
User router.

This module provides the /users endpoints:
- Login (public)
- User CRUD and the current-user profile (protected by the authorization gate)
"""
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from identity_service.auth.errors import InvalidCredentialsError
from identity_service.auth.jwt import TokenManager
from identity_service.auth.middleware import AuthorizationGate, VerifiedIdentity
from identity_service.auth.passwords import PasswordHasher
from identity_service.auth.service import Authenticator
from identity_service.base_microservice import BaseMicroservice
from identity_service.database import get_db_session
from identity_service.users.repository import UserRepository
from identity_service.users.service import (
    AuthRequest,
    AuthResponse,
    UserCreate,
    UserService,
    UserUpdate,
)

base_service = BaseMicroservice("identity_service.users")


def _server_error(e: Exception, context: str) -> HTTPException:
    base_service.log_error(e, context=context)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error"
    )


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_user_router(
    gate: AuthorizationGate,
    hasher: PasswordHasher,
    token_manager: TokenManager,
) -> APIRouter:
    """
    Build the /users router.

    Args:
        gate: Authorization gate for every route except login
        hasher: Password hasher shared by login and user updates
        token_manager: Issues tokens on login

    Returns:
        APIRouter with login and user endpoints
    """
    router = APIRouter(prefix="/users", tags=["users"])
    protected = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(gate)])

    def get_user_service(db: AsyncSession = Depends(get_db_session)) -> UserService:
        return UserService(db, hasher)

    def get_authenticator(db: AsyncSession = Depends(get_db_session)) -> Authenticator:
        return Authenticator(UserRepository(db), hasher, token_manager)

    # --- Public ---

    @router.post("/auth")
    async def authenticate(
        credentials: AuthRequest,
        authenticator: Authenticator = Depends(get_authenticator),
        service: UserService = Depends(get_user_service)
    ):
        """
        Authenticate a user with email and password.

        Returns:
            Envelope with the token and user information
        """
        try:
            result = await authenticator.authenticate(credentials.email, credentials.password)
            user = await service.get_user_by_id(result.record.id)
        except InvalidCredentialsError:
            base_service.log_warning("user.login.failed", {"email": credentials.email})
            raise _invalid_credentials()
        except Exception as e:
            raise _server_error(e, "User login")

        if user is None:
            # Deleted between the credential check and the profile fetch
            raise _invalid_credentials()

        base_service.log_event("user.login", {"id": user.id, "email": user.email})
        return base_service.mcp_response(
            data=AuthResponse(token=result.token, user=user),
            message="Authentication successful"
        )

    # --- Protected ---

    @protected.post("", status_code=status.HTTP_201_CREATED)
    async def create_user(
        user_data: UserCreate,
        identity: VerifiedIdentity = Depends(gate),
        service: UserService = Depends(get_user_service)
    ):
        """Create a new user in an existing app."""
        try:
            user = await service.create_user(user_data)
        except HTTPException:
            raise
        except Exception as e:
            raise _server_error(e, "Create user")

        base_service.log_event("user.created", {
            "id": user.id,
            "email": user.email,
            "app_id": user.app_id,
            "by": identity.subject_id
        })
        return base_service.mcp_response(
            data=user,
            message="User created successfully",
            status_code=status.HTTP_201_CREATED
        )

    @protected.get("")
    async def list_users(service: UserService = Depends(get_user_service)):
        """List all users."""
        try:
            users = await service.list_users()
        except Exception as e:
            raise _server_error(e, "List users")
        return base_service.mcp_response(data=users, message="Users retrieved successfully")

    @protected.get("/me")
    async def get_current_user_info(
        identity: VerifiedIdentity = Depends(gate),
        service: UserService = Depends(get_user_service)
    ):
        """Get information about the authenticated user."""
        try:
            user = await service.get_user_by_id(identity.user_id)
        except Exception as e:
            raise _server_error(e, "Get current user")

        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        return base_service.mcp_response(data=user, message="User information retrieved successfully")

    @protected.get("/{user_id}")
    async def get_user(user_id: int, service: UserService = Depends(get_user_service)):
        """Get a single user by ID."""
        try:
            user = await service.get_user_by_id(user_id)
        except Exception as e:
            raise _server_error(e, "Get user")

        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        return base_service.mcp_response(data=user, message="User retrieved successfully")

    # Updates are accepted on both POST and PUT
    @protected.api_route("/{user_id}", methods=["POST", "PUT"])
    async def update_user(
        user_id: int,
        update_data: UserUpdate,
        identity: VerifiedIdentity = Depends(gate),
        service: UserService = Depends(get_user_service)
    ):
        """Update an existing user."""
        try:
            user = await service.update_user(user_id, update_data)
        except HTTPException:
            raise
        except Exception as e:
            raise _server_error(e, "Update user")

        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        base_service.log_event("user.updated", {
            "id": user_id,
            "fields_updated": list(update_data.model_dump(exclude_unset=True).keys()),
            "by": identity.subject_id
        })
        return base_service.mcp_response(data=user, message="User updated successfully")

    @protected.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_user(
        user_id: int,
        identity: VerifiedIdentity = Depends(gate),
        service: UserService = Depends(get_user_service)
    ):
        """Delete a user."""
        try:
            deleted = await service.delete_user(user_id)
        except Exception as e:
            raise _server_error(e, "Delete user")

        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        base_service.log_event("user.deleted", {"id": user_id, "by": identity.subject_id})
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # Both routers already carry the /users prefix
    users = APIRouter()
    users.include_router(router)
    users.include_router(protected)
    return users
