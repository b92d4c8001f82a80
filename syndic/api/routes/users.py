"""User administration routes."""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...schemas.auth import (
    AuthUser, ProfileUpdate, RoleUpdate, UserCreate, UserResponse, UserStats
)
from ...core.security import get_current_user, get_user_service, users_manager_required
from ...models.enums import Role, UserStatus
from ...services.users import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=List[UserResponse])
async def list_users(
    search: Optional[str] = Query(None, description="Match name, email or phone"),
    role: Optional[Role] = Query(None),
    status: Optional[UserStatus] = Query(None),
    current_user: AuthUser = Depends(users_manager_required),
    users: UserService = Depends(get_user_service)
):
    """List users (admin only)."""
    return await users.list_users(current_user, search=search, role=role, status=status)


@router.get("/stats", response_model=UserStats)
async def get_user_stats(
    current_user: AuthUser = Depends(users_manager_required),
    users: UserService = Depends(get_user_service)
):
    """Headline user counters (admin only)."""
    return await users.stats(current_user)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    user_create: UserCreate,
    current_user: AuthUser = Depends(users_manager_required),
    users: UserService = Depends(get_user_service)
):
    """Create a user account (admin only)."""
    return await users.create_user(current_user, user_create)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    """Get a user; users may always read their own record."""
    return await users.get_user(current_user, user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_profile(
    user_id: uuid.UUID,
    profile_update: ProfileUpdate,
    current_user: AuthUser = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    """Edit display metadata of a user."""
    return await users.update_profile(current_user, user_id, profile_update)


@router.patch("/{user_id}/role", response_model=UserResponse)
async def change_role(
    user_id: uuid.UUID,
    role_update: RoleUpdate,
    current_user: AuthUser = Depends(users_manager_required),
    users: UserService = Depends(get_user_service)
):
    """Change a user's role (admin only)."""
    return await users.change_role(current_user, user_id, role_update.role)


@router.post("/{user_id}/{action}", response_model=UserResponse)
async def change_status(
    user_id: uuid.UUID,
    action: str,
    current_user: AuthUser = Depends(users_manager_required),
    users: UserService = Depends(get_user_service)
):
    """Approve, reject, deactivate or reactivate an account (admin only)."""
    return await users.transition(current_user, user_id, action)
