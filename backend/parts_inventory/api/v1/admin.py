"""Administration endpoints: dashboard and user management."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.core.dependencies import get_current_user, get_db, require_role
from parts_inventory.models.user import User
from parts_inventory.schemas.user import (
    DashboardStatistics,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from parts_inventory.services import users as user_service

router = APIRouter()


@router.get("/dashboard", response_model=DashboardStatistics)
async def dashboard(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DashboardStatistics:
    await require_role("admin", user)
    return await user_service.get_dashboard_statistics(db)


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[UserResponse]:
    await require_role("admin", user)
    return [UserResponse.model_validate(u) for u in await user_service.list_users(db)]


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    body: UserCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    await require_role("admin", user)
    created = await user_service.create_user(db, body)
    return UserResponse.model_validate(created)


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    await require_role("admin", user)
    return UserResponse.model_validate(await user_service.require_user(db, user_id))


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    body: UserUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    await require_role("admin", user)
    updated = await user_service.update_user(db, user_id, body)
    return UserResponse.model_validate(updated)


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    await require_role("admin", user)
    await user_service.delete_user(db, user_id)
