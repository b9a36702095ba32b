"""Shared seeding helpers for inventory tests."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.models.category import Category
from parts_inventory.models.part import Part

TEST_PASSWORD = "correct-horse-battery"


async def make_category(
    db: AsyncSession,
    name: str,
    *,
    parent_id: int | None = None,
    display_order: int = 0,
    description: str | None = None,
    is_active: bool = True,
) -> Category:
    category = Category(
        name=name,
        parent_id=parent_id,
        display_order=display_order,
        description=description,
        is_active=is_active,
    )
    db.add(category)
    await db.commit()
    return category


async def make_part(
    db: AsyncSession,
    part_number: str,
    price: str | int = "1000",
    *,
    part_name: str | None = None,
    manufacturer: str | None = None,
    description: str | None = None,
    category_id: int | None = None,
    created_at: datetime | None = None,
    updated_at: datetime | None = None,
) -> Part:
    """Insert a part directly, bypassing the service, with optional fixed timestamps."""
    part = Part(
        part_number=part_number,
        part_name=part_name or f"Part {part_number}",
        price=Decimal(str(price)),
        manufacturer=manufacturer,
        description=description,
        category_id=category_id,
    )
    if created_at is not None:
        part.created_at = created_at
    if updated_at is not None:
        part.updated_at = updated_at
    db.add(part)
    await db.commit()
    return part
