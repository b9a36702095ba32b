"""Part record store: registration, update, deletion and lookups."""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from parts_inventory.core.exceptions import ConflictError, NotFoundError, ValidationError
from parts_inventory.models.category import Category
from parts_inventory.models.part import Part
from parts_inventory.schemas.part import CountItem, PartCreate, PartResponse, PartStatistics
from parts_inventory.services.persistence import flush_or_raise

logger = logging.getLogger(__name__)

# Upper bounds (exclusive) of the price buckets used by the statistics query.
PRICE_BUCKETS: tuple[tuple[int, str], ...] = (
    (1000, "<1000"),
    (5000, "1000-5000"),
    (10000, "5000-10000"),
    (50000, "10000-50000"),
)
TOP_PRICE_BUCKET = ">=50000"


def part_response(part: Part) -> PartResponse:
    """Build PartResponse; ``part.category`` must already be loaded."""
    return PartResponse(
        id=part.id,
        part_number=part.part_number,
        part_name=part.part_name,
        price=part.price,
        manufacturer=part.manufacturer,
        description=part.description,
        category_id=part.category_id,
        category_name=part.category.name if part.category is not None else None,
        created_at=part.created_at,
        updated_at=part.updated_at,
    )


def _has_text(value: str | None) -> bool:
    return value is not None and bool(value.strip())


def _validate_part_data(data: PartCreate) -> None:
    """Fail fast on the first missing or invalid field."""
    if not _has_text(data.part_number):
        raise ValidationError("Part number is required.", {"part_number": "required"})
    if not _has_text(data.part_name):
        raise ValidationError("Part name is required.", {"part_name": "required"})
    if data.price is None:
        raise ValidationError("Price is required.", {"price": "required"})
    if data.price < 0:
        raise ValidationError("Price must be 0 or greater.", {"price": "must be >= 0"})


async def _ensure_category_exists(db: AsyncSession, category_id: int | None) -> None:
    if category_id is None:
        return
    if await db.get(Category, category_id) is None:
        raise NotFoundError(f"Category {category_id} not found.")


async def get_part(db: AsyncSession, part_id: int) -> Part | None:
    result = await db.execute(
        select(Part)
        .options(selectinload(Part.category))
        .where(Part.id == part_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def require_part(db: AsyncSession, part_id: int) -> Part:
    part = await get_part(db, part_id)
    if part is None:
        raise NotFoundError(f"Part {part_id} not found.")
    return part


async def find_all_parts(db: AsyncSession) -> list[Part]:
    """All parts in storage order (ascending id)."""
    result = await db.execute(select(Part).options(selectinload(Part.category)).order_by(Part.id))
    return list(result.scalars().all())


async def find_by_part_number(db: AsyncSession, part_number: str | None) -> Part | None:
    if not _has_text(part_number):
        return None
    result = await db.execute(
        select(Part).options(selectinload(Part.category)).where(Part.part_number == part_number)
    )
    return result.scalar_one_or_none()


async def is_part_number_duplicated(
    db: AsyncSession, part_number: str | None, exclude_id: int | None = None
) -> bool:
    """Case-sensitive exact match against every part except ``exclude_id``."""
    if not _has_text(part_number):
        return False
    result = await db.execute(select(Part.id).where(Part.part_number == part_number))
    existing_id = result.scalars().first()
    if existing_id is None:
        return False
    return exclude_id is None or existing_id != exclude_id


async def register_part(db: AsyncSession, data: PartCreate) -> Part:
    logger.info("Registering part %s", data.part_number)
    _validate_part_data(data)
    await _ensure_category_exists(db, data.category_id)

    if await is_part_number_duplicated(db, data.part_number):
        raise ConflictError(f"Part number '{data.part_number}' is already registered.")

    part = Part(
        part_number=data.part_number,
        part_name=data.part_name,
        price=data.price,
        manufacturer=data.manufacturer,
        description=data.description,
        category_id=data.category_id,
    )
    db.add(part)
    await flush_or_raise(
        db,
        conflict_detail=f"Part number '{data.part_number}' is already registered.",
        action="register part",
    )
    logger.info("Registered part id=%s part_number=%s", part.id, part.part_number)
    return await require_part(db, part.id)


async def update_part(db: AsyncSession, part_id: int, data: PartCreate) -> Part:
    """Overwrite the mutable fields of an existing part, keeping id and created_at."""
    logger.info("Updating part id=%s", part_id)
    part = await require_part(db, part_id)
    _validate_part_data(data)
    await _ensure_category_exists(db, data.category_id)

    if await is_part_number_duplicated(db, data.part_number, exclude_id=part_id):
        raise ConflictError(f"Part number '{data.part_number}' is already used by another part.")

    part.part_number = data.part_number
    part.part_name = data.part_name
    part.price = data.price
    part.description = data.description
    part.manufacturer = data.manufacturer
    part.category_id = data.category_id
    part.updated_at = datetime.now()

    await flush_or_raise(
        db,
        conflict_detail=f"Part number '{data.part_number}' is already used by another part.",
        action="update part",
    )
    logger.info("Updated part id=%s part_number=%s", part.id, part.part_number)
    return await require_part(db, part_id)


async def delete_part(db: AsyncSession, part_id: int) -> None:
    logger.info("Deleting part id=%s", part_id)
    part = await db.get(Part, part_id)
    if part is None:
        raise NotFoundError(f"Part {part_id} not found.")

    await db.delete(part)
    await flush_or_raise(db, conflict_detail="Part is still referenced.", action="delete part")
    logger.info("Deleted part id=%s", part_id)


def _contains(haystack: str | None, needle: str) -> bool:
    return haystack is not None and needle.lower() in haystack.lower()


async def find_by_conditions(
    db: AsyncSession,
    part_name: str | None = None,
    manufacturer: str | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    category_id: int | None = None,
) -> list[Part]:
    """Simple search: full scan filtered in memory.

    Absent conditions match everything; name and manufacturer are
    case-insensitive substring matches.
    """
    parts = await find_all_parts(db)
    matched = []
    for part in parts:
        if _has_text(part_name) and not _contains(part.part_name, part_name.strip()):
            continue
        if _has_text(manufacturer) and not _contains(part.manufacturer, manufacturer.strip()):
            continue
        if category_id is not None and part.category_id != category_id:
            continue
        if min_price is not None and part.price < min_price:
            continue
        if max_price is not None and part.price > max_price:
            continue
        matched.append(part)

    logger.debug("Simple search matched %d of %d parts", len(matched), len(parts))
    return matched


def _price_bucket_expression():
    whens = [(Part.price < upper, label) for upper, label in PRICE_BUCKETS]
    return case(*whens, else_=TOP_PRICE_BUCKET).label("price_range")


async def get_part_statistics(db: AsyncSession) -> PartStatistics:
    """Part counts by category, manufacturer and price bucket."""
    total = (await db.execute(select(func.count(Part.id)))).scalar_one()

    by_category = await db.execute(
        select(Category.name, func.count(Part.id))
        .select_from(Category)
        .outerjoin(Part, Part.category_id == Category.id)
        .group_by(Category.id, Category.name)
        .order_by(func.count(Part.id).desc(), Category.name)
    )

    by_manufacturer = await db.execute(
        select(Part.manufacturer, func.count(Part.id))
        .group_by(Part.manufacturer)
        .order_by(func.count(Part.id).desc())
    )

    buckets = select(_price_bucket_expression(), Part.price).subquery()
    by_price = await db.execute(
        select(buckets.c.price_range, func.count())
        .group_by(buckets.c.price_range)
        .order_by(func.min(buckets.c.price))
    )

    return PartStatistics(
        total_parts=total,
        by_category=[CountItem(label=name, count=count) for name, count in by_category.all()],
        by_manufacturer=[
            CountItem(label=name, count=count) for name, count in by_manufacturer.all()
        ],
        by_price_range=[CountItem(label=label, count=count) for label, count in by_price.all()],
    )
