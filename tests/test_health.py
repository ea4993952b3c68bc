"""Tests for health endpoint."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health endpoint returns ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_stores_endpoint(client: AsyncClient, add_store):
    """Test store listing returns a render payload."""
    await add_store("Durand Coffee", tags=["Wifi"])

    response = await client.get("/stores")
    assert response.status_code == 200
    data = response.json()

    # Check required fields
    assert data["view"] == "stores"
    assert "title" in data
    assert "flashes" in data
    assert data["data"]["page"] == 1
    assert data["data"]["count"] == 1
    assert [s["slug"] for s in data["data"]["stores"]] == ["durand-coffee"]
