"""Shared test fixtures."""

import os
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-jwt")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from parts_inventory.core.dependencies import get_db  # noqa: E402
from parts_inventory.core.security import create_access_token, hash_password  # noqa: E402
from parts_inventory.db.base import Base  # noqa: E402
from parts_inventory.main import app  # noqa: E402
from parts_inventory.models.user import ROLE_ADMIN, ROLE_USER, User  # noqa: E402
from tests.helpers import TEST_PASSWORD  # noqa: E402


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database per test, with the schema created from the models."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'inventory.db'}")

    # pysqlite/aiosqlite manage BEGIN themselves, which breaks SAVEPOINT.
    # Hand transaction control back to SQLAlchemy.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP test client whose requests share the test's session.

    Each request commits on success and rolls back on error, like get_db.
    """

    async def _test_get_db() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    app.dependency_overrides[get_db] = _test_get_db
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_db, None)


def auth_headers(user: User) -> dict:
    """Return Authorization headers carrying a token for ``user``."""
    token = create_access_token(sub=user.username, role=user.role)
    return {"Authorization": f"Bearer {token}"}


async def _seed_user(db: AsyncSession, username: str, role: str) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        full_name=username.title(),
        password_hash=hash_password(TEST_PASSWORD),
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def admin_user(db: AsyncSession) -> User:
    return await _seed_user(db, "admin", ROLE_ADMIN)


@pytest.fixture
async def regular_user(db: AsyncSession) -> User:
    return await _seed_user(db, "mechanic", ROLE_USER)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers(admin_user)


@pytest.fixture
def user_headers(regular_user: User) -> dict:
    return auth_headers(regular_user)
