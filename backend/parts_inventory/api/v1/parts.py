"""Authenticated endpoints for parts: CRUD, simple and advanced search."""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.core.dependencies import get_current_user, get_db, require_role
from parts_inventory.core.exceptions import ConflictError
from parts_inventory.models.user import User
from parts_inventory.schemas.part import (
    PartCreate,
    PartNumberCheckResponse,
    PartResponse,
    PartStatistics,
    PartUpdate,
)
from parts_inventory.schemas.search import SearchCriteria, SearchPage, SearchStatistics
from parts_inventory.services import parts as parts_service
from parts_inventory.services import search as search_service
from parts_inventory.services.parts import part_response

router = APIRouter()


def criteria_from_query(
    part_number: str | None = Query(None),
    part_name: str | None = Query(None),
    manufacturer: str | None = Query(None),
    category_id: int | None = Query(None),
    category_name: str | None = Query(None),
    min_price: Decimal | None = Query(None),
    max_price: Decimal | None = Query(None),
    created_after: str | None = Query(None, description="YYYY-MM-DD"),
    created_before: str | None = Query(None, description="YYYY-MM-DD"),
    updated_after: str | None = Query(None, description="YYYY-MM-DD"),
    updated_before: str | None = Query(None, description="YYYY-MM-DD"),
    sort_by: str | None = Query(None),
    sort_order: str | None = Query(None),
    page: int | None = Query(None),
    size: int | None = Query(None),
) -> SearchCriteria:
    return SearchCriteria(
        part_number=part_number,
        part_name=part_name,
        manufacturer=manufacturer,
        category_id=category_id,
        category_name=category_name,
        min_price=min_price,
        max_price=max_price,
        created_after=created_after,
        created_before=created_before,
        updated_after=updated_after,
        updated_before=updated_before,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        size=size,
    )


@router.get("", response_model=SearchPage)
async def list_parts(
    page: int | None = Query(None),
    size: int | None = Query(None),
    sort_by: str | None = Query(None),
    sort_order: str | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SearchPage:
    await require_role("user", user)
    criteria = SearchCriteria(page=page, size=size, sort_by=sort_by, sort_order=sort_order)
    return await search_service.search_by_advanced_criteria(db, criteria)


@router.post("", response_model=PartResponse, status_code=201)
async def create_part(
    body: PartCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PartResponse:
    await require_role("user", user)

    if await parts_service.is_part_number_duplicated(db, body.part_number):
        raise ConflictError(f"Part number '{body.part_number}' is already registered.")

    part = await parts_service.register_part(db, body)
    return part_response(part)


@router.get("/search", response_model=list[PartResponse])
async def simple_search(
    part_name: str | None = Query(None),
    manufacturer: str | None = Query(None),
    min_price: Decimal | None = Query(None),
    max_price: Decimal | None = Query(None),
    category_id: int | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[PartResponse]:
    await require_role("user", user)
    found = await parts_service.find_by_conditions(
        db,
        part_name=part_name,
        manufacturer=manufacturer,
        min_price=min_price,
        max_price=max_price,
        category_id=category_id,
    )
    return [part_response(p) for p in found]


@router.get("/advanced-search", response_model=SearchPage)
async def advanced_search(
    criteria: SearchCriteria = Depends(criteria_from_query),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SearchPage:
    await require_role("user", user)
    page = await search_service.search_by_advanced_criteria(db, criteria)
    page.statistics = await search_service.get_search_statistics(db, criteria)
    return page


@router.post("/advanced-search", response_model=SearchPage)
async def advanced_search_body(
    body: SearchCriteria,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SearchPage:
    await require_role("user", user)
    page = await search_service.search_by_advanced_criteria(db, body)
    page.statistics = await search_service.get_search_statistics(db, body)
    return page


@router.get("/search-statistics", response_model=SearchStatistics)
async def search_statistics(
    criteria: SearchCriteria = Depends(criteria_from_query),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SearchStatistics:
    await require_role("user", user)
    return await search_service.get_search_statistics(db, criteria)


@router.get("/statistics", response_model=PartStatistics)
async def part_statistics(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PartStatistics:
    await require_role("user", user)
    return await parts_service.get_part_statistics(db)


@router.get("/check-part-number", response_model=PartNumberCheckResponse)
async def check_part_number(
    part_number: str = Query(..., min_length=1),
    exclude_id: int | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PartNumberCheckResponse:
    await require_role("user", user)
    duplicated = await parts_service.is_part_number_duplicated(db, part_number, exclude_id)
    return PartNumberCheckResponse(part_number=part_number, duplicated=duplicated)


@router.get("/{part_id}", response_model=PartResponse)
async def get_part(
    part_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PartResponse:
    await require_role("user", user)
    return part_response(await parts_service.require_part(db, part_id))


@router.put("/{part_id}", response_model=PartResponse)
async def update_part(
    part_id: int,
    body: PartUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PartResponse:
    await require_role("user", user)

    if await parts_service.is_part_number_duplicated(db, body.part_number, exclude_id=part_id):
        raise ConflictError(f"Part number '{body.part_number}' is already used by another part.")

    part = await parts_service.update_part(db, part_id, body)
    return part_response(part)


@router.delete("/{part_id}", status_code=204)
async def delete_part(
    part_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    await require_role("user", user)
    await parts_service.delete_part(db, part_id)
