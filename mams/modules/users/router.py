"""User administration endpoints. Everything except own-password change is Admin only."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.auth.dependencies import AdminUser, CurrentUser
from mams.core.auth.models import User, UserRole
from mams.core.database import get_db
from mams.modules.users.schemas import (
    ChangeOwnPassword,
    SetPassword,
    UserCreate,
    UserListFilters,
    UserResponse,
    UserUpdate,
)
from mams.modules.users.service import UserService
from mams.shared.schemas import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/users", tags=["Users"])


def _user_response(user: User, message: str | None = None) -> ApiResponse[UserResponse]:
    return ApiResponse(data=UserResponse.model_validate(user), message=message)


@router.get("", response_model=ApiResponse[PaginatedResponse[UserResponse]])
async def list_users(
    current_user: AdminUser,
    role: UserRole | None = Query(None),
    assigned_base: str | None = Query(None),
    is_active: bool | None = Query(None),
    search: str | None = Query(None, description="Username, name or email substring"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    filters = UserListFilters(
        role=role,
        assigned_base=assigned_base,
        is_active=is_active,
        search=search,
        page=page,
        limit=limit,
    )
    users, total = await UserService(db).list_users(filters)
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[UserResponse.model_validate(u) for u in users],
            total=total,
            page=page,
            limit=limit,
        ),
    )


# Declared before /{user_id} so "me" is never parsed as an id
@router.post("/me/change-password", response_model=ApiResponse[UserResponse])
async def change_own_password(
    data: ChangeOwnPassword,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Any authenticated user; the current password must match."""
    user = await UserService(db).change_own_password(
        user_id=current_user.id,
        current_password=data.current_password,
        new_password=data.new_password,
    )
    return _user_response(user, "Password changed successfully")


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(
    user_id: int,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).get_user(user_id)
    return _user_response(user)


@router.post("", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """BaseCommander and LogisticsOfficer accounts need an assigned_base."""
    user = await UserService(db).create(data, current_user.principal)
    return _user_response(user, "User created successfully")


@router.put("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    """Change email, name, role or assigned base."""
    user = await UserService(db).update(user_id, data, current_user.principal)
    return _user_response(user, "User updated successfully")


@router.post("/{user_id}/deactivate", response_model=ApiResponse[UserResponse])
async def deactivate_user(
    user_id: int,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).deactivate(user_id, current_user.principal)
    return _user_response(user, "User deactivated")


@router.post("/{user_id}/activate", response_model=ApiResponse[UserResponse])
async def activate_user(
    user_id: int,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).activate(user_id, current_user.principal)
    return _user_response(user, "User activated")


@router.post("/{user_id}/set-password", response_model=ApiResponse[UserResponse])
async def set_user_password(
    user_id: int,
    data: SetPassword,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).set_password(user_id, data.password, current_user.principal)
    return _user_response(user, "Password set successfully")
