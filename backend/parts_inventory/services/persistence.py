"""Flush helpers that translate SQLAlchemy failures into service errors."""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.core.exceptions import ConflictError, StorageError

logger = logging.getLogger(__name__)


async def flush_or_raise(db: AsyncSession, conflict_detail: str, action: str) -> None:
    """Flush pending changes.

    A constraint violation becomes ``ConflictError(conflict_detail)``; this is
    the storage-level backstop for the service's own uniqueness pre-checks,
    which are not atomic with the write. Any other database failure becomes
    ``StorageError``.
    """
    try:
        await db.flush()
    except IntegrityError as exc:
        logger.warning("Constraint violation while trying to %s: %s", action, exc.orig)
        raise ConflictError(conflict_detail) from exc
    except SQLAlchemyError as exc:
        logger.error("Database error while trying to %s: %s", action, exc)
        raise StorageError(f"Failed to {action}.") from exc
