"""Category tree: two-level hierarchy, deletability and statistics.

The hierarchy is fixed at two levels (parent and child). Rather than walk an
arbitrary tree, every save rejects links that would create a third level, and
the tree is materialised with two queries: parents first, then their children
by parent id.
"""

import logging
from collections import defaultdict
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.core.exceptions import ConflictError, NotFoundError, ValidationError
from parts_inventory.models.category import Category
from parts_inventory.models.part import Part
from parts_inventory.schemas.category import (
    CategoryCreate,
    CategoryResponse,
    CategoryStatistics,
    CategoryTreeNode,
    CategoryUpdate,
)
from parts_inventory.services.persistence import flush_or_raise

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 100


def _ordered(stmt):
    return stmt.order_by(Category.display_order, Category.id)


async def get_category(db: AsyncSession, category_id: int) -> Category | None:
    return await db.get(Category, category_id)


async def require_category(db: AsyncSession, category_id: int) -> Category:
    category = await get_category(db, category_id)
    if category is None:
        raise NotFoundError(f"Category {category_id} not found.")
    return category


async def find_all_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(_ordered(select(Category)))
    return list(result.scalars().all())


async def _count_children(db: AsyncSession, category_id: int) -> int:
    result = await db.execute(
        select(func.count(Category.id)).where(Category.parent_id == category_id)
    )
    return result.scalar_one()


async def _count_parts(db: AsyncSession, category_id: int) -> int:
    result = await db.execute(select(func.count(Part.id)).where(Part.category_id == category_id))
    return result.scalar_one()


async def is_name_exists(db: AsyncSession, name: str | None, exclude_id: int | None = None) -> bool:
    if name is None or not name.strip():
        return False
    result = await db.execute(select(Category.id).where(Category.name == name.strip()))
    existing_id = result.scalars().first()
    if existing_id is None:
        return False
    return exclude_id is None or existing_id != exclude_id


async def is_deletable(db: AsyncSession, category_id: int) -> bool:
    """True when the category exists and has no children and no parts.

    Counts are read live on every call, so the answer reflects the state at
    check time only.
    """
    if await get_category(db, category_id) is None:
        return False
    if await _count_children(db, category_id) > 0:
        return False
    return await _count_parts(db, category_id) == 0


async def _validate_category(db: AsyncSession, category: Category) -> None:
    name = (category.name or "").strip()
    if not name:
        raise ValidationError("Category name is required.", {"name": "required"})
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(
            f"Category name must be at most {NAME_MAX_LENGTH} characters.",
            {"name": f"max {NAME_MAX_LENGTH} characters"},
        )

    if category.parent_id is None:
        return

    if category.id is not None and category.parent_id == category.id:
        raise ValidationError(
            "A category cannot be its own parent.", {"parent_id": "self reference"}
        )

    parent = await get_category(db, category.parent_id)
    if parent is None:
        raise NotFoundError(f"Parent category {category.parent_id} not found.")
    if parent.parent_id is not None:
        raise ValidationError(
            "Categories cannot be nested more than two levels deep.",
            {"parent_id": "parent is already a child category"},
        )
    if category.id is not None and await _count_children(db, category.id) > 0:
        raise ValidationError(
            "A category with child categories cannot become a child category.",
            {"parent_id": "category has children"},
        )


async def save_category(db: AsyncSession, category: Category) -> Category:
    """Validate invariants and name uniqueness, then insert or update."""
    is_new = category.id is None
    logger.info("Saving category %r (new=%s)", category.name, is_new)

    # Pending attribute changes must not reach the database before validation.
    with db.no_autoflush:
        await _validate_category(db, category)
        category.name = category.name.strip()
        if await is_name_exists(db, category.name, exclude_id=category.id):
            raise ConflictError(f"Category name '{category.name}' already exists.")

    if is_new:
        db.add(category)
    await flush_or_raise(
        db,
        conflict_detail=f"Category name '{category.name}' already exists.",
        action="save category",
    )
    await db.refresh(category)
    logger.info("Saved category id=%s name=%r", category.id, category.name)
    return category


async def create_category(db: AsyncSession, data: CategoryCreate) -> Category:
    category = Category(
        name=data.name,
        description=data.description,
        display_order=data.display_order,
        is_active=data.is_active,
        parent_id=data.parent_id,
    )
    return await save_category(db, category)


async def update_category(db: AsyncSession, category_id: int, data: CategoryUpdate) -> Category:
    category = await require_category(db, category_id)

    with db.no_autoflush:
        for field, value in data.model_dump(exclude_unset=True).items():
            if field in ("name", "display_order", "is_active") and value is None:
                continue
            setattr(category, field, value)
        category.updated_at = datetime.now()

    return await save_category(db, category)


async def delete_category(db: AsyncSession, category_id: int) -> None:
    logger.info("Deleting category id=%s", category_id)
    category = await require_category(db, category_id)

    if not await is_deletable(db, category_id):
        raise ConflictError(
            f"Category '{category.name}' is not deletable: "
            "it still has child categories or assigned parts."
        )

    await db.delete(category)
    await flush_or_raise(
        db,
        conflict_detail=f"Category '{category.name}' is still referenced.",
        action="delete category",
    )
    logger.info("Deleted category id=%s name=%r", category_id, category.name)


async def find_parent_categories(db: AsyncSession, active_only: bool = False) -> list[Category]:
    stmt = select(Category).where(Category.parent_id.is_(None))
    if active_only:
        stmt = stmt.where(Category.is_active.is_(True))
    result = await db.execute(_ordered(stmt))
    return list(result.scalars().all())


async def find_child_categories(db: AsyncSession, parent_id: int) -> list[Category]:
    result = await db.execute(_ordered(select(Category).where(Category.parent_id == parent_id)))
    return list(result.scalars().all())


async def find_category_tree(db: AsyncSession) -> list[CategoryTreeNode]:
    """Parent categories, each with its children, both ordered by display_order."""
    parents = await find_parent_categories(db)
    if not parents:
        return []

    result = await db.execute(
        _ordered(select(Category).where(Category.parent_id.in_([p.id for p in parents])))
    )
    children_by_parent: dict[int, list[Category]] = defaultdict(list)
    for child in result.scalars().all():
        children_by_parent[child.parent_id].append(child)

    tree = []
    for parent in parents:
        node = CategoryTreeNode.model_validate(parent)
        node.children = [
            CategoryResponse.model_validate(child) for child in children_by_parent[parent.id]
        ]
        tree.append(node)

    logger.debug("Built category tree with %d parent categories", len(tree))
    return tree


async def find_active_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(_ordered(select(Category).where(Category.is_active.is_(True))))
    return list(result.scalars().all())


async def search_categories(db: AsyncSession, keyword: str | None) -> list[Category]:
    """Substring match on name or description; a blank keyword returns everything."""
    if keyword is None or not keyword.strip():
        return await find_all_categories(db)

    needle = keyword.strip().lower()
    stmt = select(Category).where(
        or_(
            func.lower(Category.name).contains(needle, autoescape=True),
            func.lower(Category.description).contains(needle, autoescape=True),
        )
    )
    result = await db.execute(_ordered(stmt))
    return list(result.scalars().all())


def _ids_with_parts():
    return select(Part.category_id).where(Part.category_id.is_not(None)).distinct()


def _ids_with_children():
    return select(Category.parent_id).where(Category.parent_id.is_not(None)).distinct()


async def find_categories_with_parts(db: AsyncSession) -> list[Category]:
    result = await db.execute(_ordered(select(Category).where(Category.id.in_(_ids_with_parts()))))
    return list(result.scalars().all())


async def find_deletable_categories(db: AsyncSession) -> list[Category]:
    stmt = select(Category).where(
        Category.id.not_in(_ids_with_children()),
        Category.id.not_in(_ids_with_parts()),
    )
    result = await db.execute(_ordered(stmt))
    return list(result.scalars().all())


async def get_category_statistics(db: AsyncSession) -> CategoryStatistics:
    async def count(*criteria) -> int:
        result = await db.execute(select(func.count(Category.id)).where(*criteria))
        return result.scalar_one()

    total = await count()
    with_parts = await count(Category.id.in_(_ids_with_parts()))
    statistics = CategoryStatistics(
        total_categories=total,
        parent_categories=await count(Category.parent_id.is_(None)),
        child_categories=await count(Category.parent_id.is_not(None)),
        categories_with_parts=with_parts,
        categories_without_parts=total - with_parts,
        deletable_categories=len(await find_deletable_categories(db)),
    )
    logger.info("Category statistics: %s", statistics.model_dump())
    return statistics
