"""Liveness and readiness checks."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_ready_when_database_and_redis_answer(client: AsyncClient):
    response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["checks"] == {"service": "ok", "database": "ok", "redis": "ok"}


@pytest.mark.asyncio
async def test_not_ready_without_redis(client: AsyncClient, monkeypatch):
    async def _down():
        raise ConnectionError("redis unreachable")

    monkeypatch.setattr("packtrack.routers.health.get_redis", _down)

    response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
    assert response.json()["checks"]["redis"].startswith("error")


@pytest.mark.asyncio
async def test_security_headers(client: AsyncClient):
    response = await client.get("/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "Content-Security-Policy" in response.headers
