"""Middleware tests: request ID, CORS, error envelopes and timeouts."""

import asyncio

import pytest
from fastapi import APIRouter, Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from ideation.config import get_settings
from ideation.database import get_session, get_session_factory
from ideation.db.enums import IdeaType
from ideation.db.models import Idea, User
from ideation.ideas import service as idea_service
from ideation.main import create_app


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 32  # uuid4 hex


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    """Custom request ID is echoed back in response."""
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    """CORS preflight returns access-control-allow-origin for configured origin."""
    response = await client.options(
        "/api/v1/ideas",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert response.headers["access-control-allow-credentials"] == "true"


@pytest.mark.asyncio
async def test_unknown_route_uses_envelope(client: AsyncClient) -> None:
    response = await client.get("/api/v1/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Not Found", "data": None}


@pytest.mark.asyncio
async def test_validation_errors_are_400(client: AsyncClient, alice, auth) -> None:
    response = await client.post("/api/v1/ideas", json={"title": "ab"}, headers=auth(alice))
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation error"
    failing = {tuple(err["loc"]) for err in body["errors"]}
    assert ("body", "title") in failing
    assert ("body", "description") in failing


@pytest.mark.asyncio
async def test_invalid_sort_field(client: AsyncClient) -> None:
    response = await client.get("/api/v1/ideas", params={"sort_by": "password_hash"})
    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid sort_by 'password_hash'")


def _app_with(router: APIRouter) -> AsyncClient:
    app = create_app()
    app.include_router(router)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest.mark.asyncio
async def test_slow_request_times_out(engine, fake_redis, monkeypatch) -> None:
    monkeypatch.setenv("IDEATION_REQUEST_TIMEOUT_SECONDS", "0.05")
    get_settings.cache_clear()

    slow = APIRouter()

    @slow.get("/api/v1/slow")
    async def _slow() -> dict[str, str]:
        await asyncio.sleep(1)
        return {"status": "late"}

    async with _app_with(slow) as ac:
        response = await ac.get("/api/v1/slow")

    assert response.status_code == 504
    assert response.json() == {"success": False, "message": "Request timed out", "data": None}


@pytest.mark.asyncio
async def test_timed_out_request_rolls_back(engine, fake_redis, alice, actor_of, monkeypatch) -> None:
    """Writes flushed before the deadline are never committed."""
    monkeypatch.setenv("IDEATION_REQUEST_TIMEOUT_SECONDS", "0.05")
    get_settings.cache_clear()

    slow = APIRouter()

    @slow.post("/api/v1/slow-write")
    async def _slow_write(db: AsyncSession = Depends(get_session)) -> dict[str, str]:  # noqa: B008
        actor = actor_of(alice)
        await idea_service.create_idea(db, actor, "Too slow", "Flushed but never committed", IdeaType.IDEATION)
        await asyncio.sleep(0.3)
        await db.commit()
        return {"status": "committed"}

    async with _app_with(slow) as ac:
        response = await ac.post("/api/v1/slow-write")
    assert response.status_code == 504

    # Long enough for a handler that was not cancelled to reach its commit.
    await asyncio.sleep(0.5)
    async with get_session_factory()() as session:
        ideas = (await session.execute(select(func.count()).select_from(Idea))).scalar_one()
        stars = (await session.execute(select(User.stars_balance).where(User.id == alice.id))).scalar_one()
    assert ideas == 0
    assert stars == 0


@pytest.mark.asyncio
async def test_unhandled_error_is_500_envelope(engine, fake_redis) -> None:
    broken = APIRouter()

    @broken.get("/api/v1/broken")
    async def _broken() -> None:
        raise RuntimeError("boom")

    async with _app_with(broken) as ac:
        response = await ac.get("/api/v1/broken")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error", "data": None}


@pytest.mark.asyncio
async def test_database_error_is_500_envelope(engine, fake_redis) -> None:
    """Driver failures other than constraint violations are reported without internals."""
    broken = APIRouter()

    @broken.get("/api/v1/db-down")
    async def _db_down() -> None:
        raise OperationalError("SELECT 1", {}, ConnectionError("server closed the connection unexpectedly"))

    async with _app_with(broken) as ac:
        response = await ac.get("/api/v1/db-down")

    assert response.status_code == 500
    body = response.json()
    assert body == {"success": False, "message": "Internal server error", "data": None}
    assert "server closed" not in response.text
