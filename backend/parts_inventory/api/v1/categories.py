"""Category endpoints (admin only)."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.core.dependencies import get_current_user, get_db, require_role
from parts_inventory.models.user import User
from parts_inventory.schemas.category import (
    CategoryCreate,
    CategoryResponse,
    CategoryStatistics,
    CategoryTreeNode,
    CategoryUpdate,
    DeletableResponse,
    NameExistsResponse,
)
from parts_inventory.services import categories as category_service

router = APIRouter()


def _responses(categories) -> list[CategoryResponse]:
    return [CategoryResponse.model_validate(c) for c in categories]


@router.get("", response_model=list[CategoryResponse])
async def list_categories(
    active_only: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[CategoryResponse]:
    await require_role("admin", user)
    if active_only:
        return _responses(await category_service.find_active_categories(db))
    return _responses(await category_service.find_all_categories(db))


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    body: CategoryCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CategoryResponse:
    await require_role("admin", user)
    category = await category_service.create_category(db, body)
    return CategoryResponse.model_validate(category)


@router.get("/tree", response_model=list[CategoryTreeNode])
async def category_tree(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[CategoryTreeNode]:
    await require_role("admin", user)
    return await category_service.find_category_tree(db)


@router.get("/parents", response_model=list[CategoryResponse])
async def list_parent_categories(
    active_only: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[CategoryResponse]:
    await require_role("admin", user)
    return _responses(await category_service.find_parent_categories(db, active_only))


@router.get("/with-parts", response_model=list[CategoryResponse])
async def list_categories_with_parts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[CategoryResponse]:
    await require_role("admin", user)
    return _responses(await category_service.find_categories_with_parts(db))


@router.get("/deletable", response_model=list[CategoryResponse])
async def list_deletable_categories(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[CategoryResponse]:
    await require_role("admin", user)
    return _responses(await category_service.find_deletable_categories(db))


@router.get("/statistics", response_model=CategoryStatistics)
async def category_statistics(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CategoryStatistics:
    await require_role("admin", user)
    return await category_service.get_category_statistics(db)


@router.get("/search", response_model=list[CategoryResponse])
async def search_categories(
    keyword: str | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[CategoryResponse]:
    await require_role("admin", user)
    return _responses(await category_service.search_categories(db, keyword))


@router.get("/check-name", response_model=NameExistsResponse)
async def check_name(
    name: str = Query(..., min_length=1),
    exclude_id: int | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> NameExistsResponse:
    await require_role("admin", user)
    exists = await category_service.is_name_exists(db, name, exclude_id)
    return NameExistsResponse(name=name, exists=exists)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CategoryResponse:
    await require_role("admin", user)
    category = await category_service.require_category(db, category_id)
    return CategoryResponse.model_validate(category)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    body: CategoryUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CategoryResponse:
    await require_role("admin", user)
    category = await category_service.update_category(db, category_id, body)
    return CategoryResponse.model_validate(category)


@router.delete("/{category_id}", status_code=204)
async def delete_category(
    category_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    await require_role("admin", user)
    await category_service.delete_category(db, category_id)


@router.get("/{category_id}/children", response_model=list[CategoryResponse])
async def list_children(
    category_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[CategoryResponse]:
    await require_role("admin", user)
    await category_service.require_category(db, category_id)
    return _responses(await category_service.find_child_categories(db, category_id))


@router.get("/{category_id}/deletable", response_model=DeletableResponse)
async def check_deletable(
    category_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DeletableResponse:
    await require_role("admin", user)
    deletable = await category_service.is_deletable(db, category_id)
    return DeletableResponse(id=category_id, deletable=deletable)
