"""Admin endpoints: dashboard and user management."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.models.user import User
from tests.helpers import make_part

NEW_USER = {
    "username": "tech01",
    "email": "tech01@example.com",
    "full_name": "Shop Technician",
    "password": "s3cret-password",
}


@pytest.mark.asyncio
async def test_dashboard(
    client: AsyncClient, db: AsyncSession, admin_headers: dict, regular_user: User
):
    await make_part(db, "P-1")

    response = await client.get("/api/v1/admin/dashboard", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {
        "total_parts": 1,
        "total_users": 2,
        "admin_users": 1,
        "regular_users": 1,
    }


@pytest.mark.asyncio
async def test_user_management(client: AsyncClient, admin_headers: dict):
    created = await client.post("/api/v1/admin/users", json=NEW_USER, headers=admin_headers)
    assert created.status_code == 201, created.text
    user_id = created.json()["id"]
    assert created.json()["role"] == "user"
    assert "password" not in created.json()

    duplicate = await client.post("/api/v1/admin/users", json=NEW_USER, headers=admin_headers)
    assert duplicate.status_code == 409

    updated = await client.put(
        f"/api/v1/admin/users/{user_id}", json={"role": "admin"}, headers=admin_headers
    )
    assert updated.status_code == 200
    assert updated.json()["role"] == "admin"

    listing = await client.get("/api/v1/admin/users", headers=admin_headers)
    assert {u["username"] for u in listing.json()} == {"admin", "tech01"}

    fetched = await client.get(f"/api/v1/admin/users/{user_id}", headers=admin_headers)
    assert fetched.json()["email"] == "tech01@example.com"

    deleted = await client.delete(f"/api/v1/admin/users/{user_id}", headers=admin_headers)
    assert deleted.status_code == 204

    missing = await client.get(f"/api/v1/admin/users/{user_id}", headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_new_user_can_log_in(client: AsyncClient, admin_headers: dict):
    await client.post("/api/v1/admin/users", json=NEW_USER, headers=admin_headers)

    response = await client.post(
        "/api/v1/auth/token",
        json={"username": "tech01", "password": "s3cret-password"},
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_last_admin_cannot_delete_self(
    client: AsyncClient, admin_user: User, admin_headers: dict
):
    admin_id = admin_user.id
    response = await client.delete(f"/api/v1/admin/users/{admin_id}", headers=admin_headers)
    assert response.status_code == 409
