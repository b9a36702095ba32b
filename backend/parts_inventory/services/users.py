"""User accounts: login, administration and the admin dashboard."""

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.core.config import settings
from parts_inventory.core.exceptions import ConflictError, NotFoundError
from parts_inventory.core.security import hash_password, verify_password
from parts_inventory.models.part import Part
from parts_inventory.models.user import ROLE_ADMIN, ROLE_USER, User
from parts_inventory.schemas.user import DashboardStatistics, UserCreate, UserUpdate
from parts_inventory.services.persistence import flush_or_raise

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def require_user(db: AsyncSession, user_id: int) -> User:
    user = await get_user(db, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found.")
    return user


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.id))
    return list(result.scalars().all())


async def authenticate(db: AsyncSession, username: str, password: str) -> User | None:
    """Return the active user matching the credentials, or None."""
    user = await get_user_by_username(db, username)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for username=%r", username)
        return None
    if not user.is_active:
        logger.info("Login refused for deactivated user %r", username)
        return None
    return user


async def _ensure_unique(
    db: AsyncSession, username: str | None, email: str | None, exclude_id: int | None = None
) -> None:
    if username is not None:
        existing = await get_user_by_username(db, username)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(f"Username '{username}' is already taken.")
    if email is not None:
        result = await db.execute(select(User).where(User.email == email))
        existing = result.scalar_one_or_none()
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(f"Email '{email}' is already registered.")


async def create_user(db: AsyncSession, data: UserCreate) -> User:
    logger.info("Creating user %r with role %s", data.username, data.role)
    await _ensure_unique(db, data.username, data.email)

    user = User(
        username=data.username,
        email=data.email,
        full_name=data.full_name,
        password_hash=hash_password(data.password),
        role=data.role,
        is_active=data.is_active,
    )
    db.add(user)
    await flush_or_raise(
        db, conflict_detail="Username or email is already registered.", action="create user"
    )
    await db.refresh(user)
    return user


async def _count_active_admins(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(User.id)).where(User.role == ROLE_ADMIN, User.is_active.is_(True))
    )
    return result.scalar_one()


async def _guard_last_admin(db: AsyncSession, user: User) -> None:
    if user.is_admin and user.is_active and await _count_active_admins(db) <= 1:
        raise ConflictError("The last active administrator cannot be removed or demoted.")


async def update_user(db: AsyncSession, user_id: int, data: UserUpdate) -> User:
    user = await require_user(db, user_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    logger.info("Updating user id=%s fields=%s", user_id, sorted(changes))

    await _ensure_unique(db, changes.get("username"), changes.get("email"), exclude_id=user.id)
    if changes.get("role", ROLE_ADMIN) != ROLE_ADMIN or changes.get("is_active") is False:
        await _guard_last_admin(db, user)

    password = changes.pop("password", None)
    if password is not None:
        user.password_hash = hash_password(password)
    for field, value in changes.items():
        setattr(user, field, value)
    user.updated_at = datetime.now()

    await flush_or_raise(
        db, conflict_detail="Username or email is already registered.", action="update user"
    )
    await db.refresh(user)
    return user


async def delete_user(db: AsyncSession, user_id: int) -> None:
    user = await require_user(db, user_id)
    await _guard_last_admin(db, user)

    await db.delete(user)
    await flush_or_raise(db, conflict_detail="User is still referenced.", action="delete user")
    logger.info("Deleted user id=%s username=%r", user_id, user.username)


async def get_dashboard_statistics(db: AsyncSession) -> DashboardStatistics:
    async def count(stmt) -> int:
        return (await db.execute(stmt)).scalar_one()

    return DashboardStatistics(
        total_parts=await count(select(func.count(Part.id))),
        total_users=await count(select(func.count(User.id))),
        admin_users=await count(select(func.count(User.id)).where(User.role == ROLE_ADMIN)),
        regular_users=await count(select(func.count(User.id)).where(User.role == ROLE_USER)),
    )


async def ensure_initial_admin(db: AsyncSession) -> User | None:
    """Create the bootstrap administrator from settings if it does not exist yet."""
    if not settings.INITIAL_ADMIN_PASSWORD:
        return None
    existing = await get_user_by_username(db, settings.INITIAL_ADMIN_USERNAME)
    if existing is not None:
        return existing

    user = User(
        username=settings.INITIAL_ADMIN_USERNAME,
        email=settings.INITIAL_ADMIN_EMAIL,
        full_name="Administrator",
        password_hash=hash_password(settings.INITIAL_ADMIN_PASSWORD),
        role=ROLE_ADMIN,
        is_active=True,
    )
    db.add(user)
    await flush_or_raise(
        db, conflict_detail="Initial administrator already exists.", action="create initial admin"
    )
    logger.info("Created initial administrator %r", user.username)
    return user
