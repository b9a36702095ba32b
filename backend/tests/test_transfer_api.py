"""CSV transfer endpoints."""

import re

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from parts_inventory.core.config import settings
from tests.helpers import make_part


@pytest.mark.asyncio
async def test_export_download(client: AsyncClient, db: AsyncSession, admin_headers: dict):
    await make_part(db, "AT-1", "1500", manufacturer="Aisin")

    response = await client.get("/api/v1/transfer/export/csv", headers=admin_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    disposition = response.headers["content-disposition"]
    assert re.search(r'filename="parts_export_\d{8}_\d{6}\.csv"', disposition)
    assert response.content.decode("utf-8").splitlines()[1].startswith('"AT-1"')

    everything = await client.get(
        "/api/v1/transfer/export/csv", params={"all": "true"}, headers=admin_headers
    )
    assert "parts_all_export_" in everything.headers["content-disposition"]


@pytest.mark.asyncio
async def test_search_export(client: AsyncClient, db: AsyncSession, admin_headers: dict):
    await make_part(db, "CHEAP", 100)
    await make_part(db, "PRICEY", 9000)

    response = await client.get(
        "/api/v1/transfer/export/csv/search",
        params={"min_price": "1000"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert "parts_search_export_" in response.headers["content-disposition"]
    lines = response.content.decode("utf-8").splitlines()
    assert len(lines) == 2
    assert lines[1].startswith('"PRICEY"')


@pytest.mark.asyncio
async def test_import_upload(client: AsyncClient, admin_headers: dict):
    content = "部品番号,部品名,価格,説明,メーカー名\nN-1,New pump,1200,,Aisin\nN-2,Bad,x,,\n"

    response = await client.post(
        "/api/v1/transfer/import/csv",
        files={"file": ("new_parts.csv", content.encode("utf-8"), "text/csv")},
        headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["success_count"] == 1
    assert data["error_count"] == 1
    assert data["success"] is False
    assert data["error_messages"][0]["row"] == 3

    listing = await client.get("/api/v1/parts", headers=admin_headers)
    assert [p["part_number"] for p in listing.json()["content"]] == ["N-1"]


@pytest.mark.asyncio
async def test_import_rejects_non_csv(client: AsyncClient, admin_headers: dict):
    response = await client.post(
        "/api/v1/transfer/import/csv",
        files={"file": ("parts.xlsx", b"binary", "application/octet-stream")},
        headers=admin_headers,
    )
    assert response.status_code == 422
    assert response.json()["errors"]["file"]


@pytest.mark.asyncio
async def test_import_requires_admin(client: AsyncClient, user_headers: dict):
    response = await client.post(
        "/api/v1/transfer/import/csv",
        files={"file": ("parts.csv", b"a,b,c,d,e\n", "text/csv")},
        headers=user_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_import_rejects_oversized_upload(
    client: AsyncClient, admin_headers: dict, monkeypatch
):
    monkeypatch.setattr(settings, "CSV_MAX_UPLOAD_BYTES", 10)
    content = "部品番号,部品名,価格,説明,メーカー名\nN-1,New pump,1200,,Aisin\n"

    response = await client.post(
        "/api/v1/transfer/import/csv",
        files={"file": ("new_parts.csv", content.encode("utf-8"), "text/csv")},
        headers=admin_headers,
    )

    assert response.status_code == 422
    assert response.json()["errors"] == {"file": "too large"}
