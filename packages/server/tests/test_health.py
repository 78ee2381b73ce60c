"""
Health, readiness and middleware tests.
"""

import pytest
from httpx import AsyncClient

from app.core.middleware import SECURITY_HEADERS


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Health endpoint should return status ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_ready_check(client: AsyncClient):
    """Ready endpoint should return status ready when the database answers."""
    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


@pytest.mark.asyncio
async def test_api_root(client: AsyncClient):
    """API v1 root should return version and endpoint list."""
    response = await client.get("/api/v1/")
    assert response.status_code == 200
    data = response.json()
    assert data["api"] == "v1"
    assert "/tasks" in data["endpoints"]
    assert "/time-entries" in data["endpoints"]


@pytest.mark.asyncio
async def test_security_headers(client: AsyncClient):
    response = await client.get("/health")
    for header, value in SECURITY_HEADERS.items():
        assert response.headers[header] == value


@pytest.mark.asyncio
async def test_request_id_is_generated(client: AsyncClient):
    response = await client.get("/health")
    assert len(response.headers["X-Request-ID"]) == 32


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "trace-abc"})
    assert response.headers["X-Request-ID"] == "trace-abc"


@pytest.mark.asyncio
async def test_error_responses_carry_headers(client: AsyncClient):
    """Middleware runs on rejected requests too."""
    response = await client.get("/api/v1/tasks")
    assert response.status_code == 401
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "X-Request-ID" in response.headers
