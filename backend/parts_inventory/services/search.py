"""Advanced part search: criteria cleanup, validation, filtering, paging.

A request flows through ``clean -> validate -> default -> execute``. Criteria
without any predicate skip the filtered query and page through the whole
table, sorting by the raw ``sort_by`` field name.
"""

import logging
import math
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, selectinload

from parts_inventory.core.exceptions import ValidationError
from parts_inventory.models.category import Category
from parts_inventory.models.part import Part
from parts_inventory.schemas.search import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    TEXT_FIELDS,
    SearchCriteria,
    SearchPage,
    SearchStatistics,
)
from parts_inventory.services.parts import part_response

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
SEARCH_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Sort keys accepted by the filtered search, matched case-insensitively.
SORT_ALIASES = {
    "partnumber": Part.part_number,
    "part_number": Part.part_number,
    "partname": Part.part_name,
    "part_name": Part.part_name,
    "manufacturer": Part.manufacturer,
    "price": Part.price,
    "categoryname": Category.name,
    "category_name": Category.name,
    "createdat": Part.created_at,
    "created_at": Part.created_at,
    "updatedat": Part.updated_at,
    "updated_at": Part.updated_at,
}

# Attribute names accepted verbatim when paging through the whole table.
PLAIN_SORT_FIELDS = {
    "id": Part.id,
    "partNumber": Part.part_number,
    "partName": Part.part_name,
    "manufacturer": Part.manufacturer,
    "price": Part.price,
    "description": Part.description,
    "createdAt": Part.created_at,
    "updatedAt": Part.updated_at,
}

# Field name -> error key used when a date cannot be parsed.
# Largest OFFSET/LIMIT the database accepts (BIGINT).
MAX_ROW_OFFSET = 2**63 - 1

DATE_ERROR_KEYS = {
    "created_after": "createdAfter",
    "created_before": "createdBefore",
    "updated_after": "updatedAfter",
    "updated_before": "updatedBefore",
}


def clean_criteria(criteria: SearchCriteria) -> SearchCriteria:
    """Trim text fields and turn blank strings into absent values."""
    updates = {}
    for field in TEXT_FIELDS:
        value = getattr(criteria, field)
        if isinstance(value, str):
            stripped = value.strip()
            updates[field] = stripped or None
    return criteria.model_copy(update=updates)


def apply_defaults(criteria: SearchCriteria) -> SearchCriteria:
    updates = {}
    if criteria.sort_by is None:
        updates["sort_by"] = DEFAULT_SORT_BY
        updates["sort_order"] = DEFAULT_SORT_ORDER
    if criteria.page is None or criteria.page < 0:
        updates["page"] = DEFAULT_PAGE
    if criteria.size is None or criteria.size <= 0:
        updates["size"] = DEFAULT_PAGE_SIZE
    return criteria.model_copy(update=updates)


def normalize_criteria(criteria: SearchCriteria) -> SearchCriteria:
    return apply_defaults(clean_criteria(criteria))


def _parse_date(value: str | None) -> date | None:
    if value is None:
        return None
    return datetime.strptime(value.strip(), DATE_FORMAT).date()


def _check_date_range(
    criteria: SearchCriteria,
    after_field: str,
    before_field: str,
    range_key: str,
    errors: dict[str, str],
) -> None:
    parsed = {}
    for field in (after_field, before_field):
        try:
            parsed[field] = _parse_date(getattr(criteria, field))
        except ValueError:
            errors[DATE_ERROR_KEYS[field]] = "Invalid date format; use YYYY-MM-DD."
            parsed[field] = None

    after, before = parsed[after_field], parsed[before_field]
    if after is not None and before is not None and after > before:
        errors[range_key] = "Start date must be on or before the end date."


def _check_page_offset(criteria: SearchCriteria, errors: dict[str, str]) -> None:
    """The row offset ``page * size`` must fit a signed 64-bit integer."""
    if criteria.page is None or criteria.page < 0 or "size" in errors:
        return
    size = criteria.size if criteria.size is not None else DEFAULT_PAGE_SIZE
    if criteria.page * size > MAX_ROW_OFFSET:
        errors["page"] = "Page number is too large for the page size."


def validate_search_criteria(criteria: SearchCriteria) -> dict[str, str]:
    """Collect every problem with ``criteria``; an empty dict means valid."""
    criteria = clean_criteria(criteria)
    errors: dict[str, str] = {}

    if criteria.min_price is not None and criteria.max_price is not None:
        if criteria.min_price > criteria.max_price:
            errors["priceRange"] = "Minimum price must not exceed maximum price."
    if criteria.min_price is not None and criteria.min_price < 0:
        errors["minPrice"] = "Minimum price must be 0 or greater."
    if criteria.max_price is not None and criteria.max_price < 0:
        errors["maxPrice"] = "Maximum price must be 0 or greater."

    _check_date_range(criteria, "created_after", "created_before", "createdDateRange", errors)
    _check_date_range(criteria, "updated_after", "updated_before", "updatedDateRange", errors)

    if criteria.page is not None and criteria.page < 0:
        errors["page"] = "Page number must be 0 or greater."
    if criteria.size is not None and criteria.size <= 0:
        errors["size"] = "Page size must be 1 or greater."
    elif criteria.size is not None and criteria.size > MAX_ROW_OFFSET:
        errors["size"] = "Page size is too large."
    _check_page_offset(criteria, errors)

    if errors:
        logger.debug("Search criteria rejected: %s", errors)
    return errors


def _prepare(criteria: SearchCriteria) -> SearchCriteria:
    errors = validate_search_criteria(criteria)
    if errors:
        logger.warning("Invalid search criteria: %s", errors)
        raise ValidationError("Invalid search criteria.", errors)
    return normalize_criteria(criteria)


def _contains(column, value: str):
    return func.lower(column).contains(value.lower(), autoescape=True)


def _start_of(value: str) -> datetime:
    return datetime.combine(_parse_date(value), time.min)


def _end_of(value: str) -> datetime:
    return datetime.combine(_parse_date(value), time(23, 59, 59))


def _conditions(criteria: SearchCriteria) -> list:
    conditions = []
    if criteria.part_number is not None:
        conditions.append(_contains(Part.part_number, criteria.part_number))
    if criteria.part_name is not None:
        conditions.append(_contains(Part.part_name, criteria.part_name))
    if criteria.manufacturer is not None:
        conditions.append(_contains(Part.manufacturer, criteria.manufacturer))
    if criteria.category_id is not None:
        conditions.append(Part.category_id == criteria.category_id)
    if criteria.category_name is not None:
        conditions.append(_contains(Category.name, criteria.category_name))
    if criteria.min_price is not None:
        conditions.append(Part.price >= criteria.min_price)
    if criteria.max_price is not None:
        conditions.append(Part.price <= criteria.max_price)
    if criteria.created_after is not None:
        conditions.append(Part.created_at >= _start_of(criteria.created_after))
    if criteria.created_before is not None:
        conditions.append(Part.created_at <= _end_of(criteria.created_before))
    if criteria.updated_after is not None:
        conditions.append(Part.updated_at >= _start_of(criteria.updated_after))
    if criteria.updated_before is not None:
        conditions.append(Part.updated_at <= _end_of(criteria.updated_before))
    return conditions


def _filtered(criteria: SearchCriteria):
    return (
        select(Part)
        .outerjoin(Category, Part.category_id == Category.id)
        .where(*_conditions(criteria))
    )


def _direction(column, sort_order: str | None):
    if sort_order is not None and sort_order.upper() == "ASC":
        return column.asc()
    return column.desc()


def map_sort_field(sort_by: str | None):
    """Resolve a user-facing sort key to a column; unknown keys sort by update time."""
    if sort_by is None:
        return Part.updated_at
    return SORT_ALIASES.get(sort_by.strip().lower(), Part.updated_at)


def _page(criteria: SearchCriteria, parts: list[Part], total: int) -> SearchPage:
    return SearchPage(
        content=[part_response(part) for part in parts],
        total_count=total,
        current_page=criteria.page,
        total_pages=math.ceil(total / criteria.size) if total else 0,
        page_size=criteria.size,
        has_next=(criteria.page + 1) * criteria.size < total,
        has_previous=criteria.page > 0,
    )


async def _all_parts_page(db: AsyncSession, criteria: SearchCriteria) -> SearchPage:
    total = (await db.execute(select(func.count(Part.id)))).scalar_one()
    column = PLAIN_SORT_FIELDS.get(criteria.sort_by, Part.updated_at)
    result = await db.execute(
        select(Part)
        .options(selectinload(Part.category))
        .order_by(_direction(column, criteria.sort_order), Part.id)
        .offset(criteria.page * criteria.size)
        .limit(criteria.size)
    )
    return _page(criteria, list(result.scalars().all()), total)


async def search_by_advanced_criteria(db: AsyncSession, criteria: SearchCriteria) -> SearchPage:
    """One page of parts matching every supplied predicate."""
    logger.info("Advanced search: %s", criteria.model_dump(exclude_none=True))
    criteria = _prepare(criteria)

    if criteria.is_empty():
        page = await _all_parts_page(db, criteria)
    else:
        total = await _count(db, criteria)
        order = _direction(map_sort_field(criteria.sort_by), criteria.sort_order)
        result = await db.execute(
            _filtered(criteria)
            .options(contains_eager(Part.category))
            .order_by(order, Part.id)
            .offset(criteria.page * criteria.size)
            .limit(criteria.size)
        )
        page = _page(criteria, list(result.unique().scalars().all()), total)

    logger.info(
        "Advanced search finished: %d results, %d pages", page.total_count, page.total_pages
    )
    return page


async def _count(db: AsyncSession, criteria: SearchCriteria) -> int:
    stmt = select(func.count()).select_from(_filtered(criteria).subquery())
    return (await db.execute(stmt)).scalar_one()


async def count_by_advanced_criteria(db: AsyncSession, criteria: SearchCriteria) -> int:
    criteria = _prepare(criteria)
    if criteria.is_empty():
        return (await db.execute(select(func.count(Part.id)))).scalar_one()
    return await _count(db, criteria)


async def find_matching_parts(db: AsyncSession, criteria: SearchCriteria) -> list[Part]:
    """Every matching part, unpaginated, in the criteria's sort order."""
    criteria = _prepare(criteria)
    if criteria.is_empty():
        result = await db.execute(
            select(Part).options(selectinload(Part.category)).order_by(Part.id)
        )
        return list(result.scalars().all())

    order = _direction(map_sort_field(criteria.sort_by), criteria.sort_order)
    result = await db.execute(
        _filtered(criteria).options(contains_eager(Part.category)).order_by(order, Part.id)
    )
    return list(result.unique().scalars().all())


def _price_summary(min_price: Decimal | None, max_price: Decimal | None) -> str:
    parts = []
    if min_price is not None:
        parts.append(f"{min_price} and above")
    if max_price is not None:
        parts.append(f"{max_price} and below")
    return " ".join(parts)


def summarize_criteria(criteria: SearchCriteria) -> dict[str, str | int]:
    criteria = clean_criteria(criteria)
    summary: dict[str, str | int] = {}
    echoed = (
        ("partNumber", criteria.part_number),
        ("partName", criteria.part_name),
        ("manufacturer", criteria.manufacturer),
        ("categoryId", criteria.category_id),
        ("categoryName", criteria.category_name),
        ("createdAfter", criteria.created_after),
        ("createdBefore", criteria.created_before),
        ("updatedAfter", criteria.updated_after),
        ("updatedBefore", criteria.updated_before),
    )
    for key, value in echoed:
        if value is not None:
            summary[key] = value
    if criteria.has_price_filter():
        summary["priceRange"] = _price_summary(criteria.min_price, criteria.max_price)
    return summary


async def get_search_statistics(db: AsyncSession, criteria: SearchCriteria) -> SearchStatistics:
    """Describe a search; the count runs as a separate query from the page itself."""
    cleaned = clean_criteria(criteria)
    return SearchStatistics(
        search_time=datetime.now().strftime(SEARCH_TIME_FORMAT),
        total_results=await count_by_advanced_criteria(db, criteria),
        search_criteria=summarize_criteria(cleaned),
        is_empty=cleaned.is_empty(),
        has_date_filter=cleaned.has_date_filter(),
        has_price_filter=cleaned.has_price_filter(),
    )
