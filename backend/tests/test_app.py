"""
Tests for the service surface: health, metrics, request IDs, error shape and seeding.
"""

import pytest
from httpx import AsyncClient

from eventhub.core.config import get_settings
from eventhub.core.security import verify_password
from eventhub.db.seed import seed_admin
from eventhub.schemas.event import EventFilters
from eventhub.services import event_service


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_metrics_exposes_booking_counters(client: AsyncClient, auth_headers, test_event):
    await client.post("/api/bookings", json={"event_id": test_event.id}, headers=auth_headers)

    response = await client.get("/metrics")
    assert response.status_code == 200
    assert 'eventhub_booking_attempts_total{outcome="created"}' in response.text


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert response.headers["X-Response-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_request_id_is_generated(client: AsyncClient):
    response = await client.get("/")
    assert len(response.headers["X-Request-ID"]) == 12


@pytest.mark.asyncio
async def test_unknown_route_uses_error_shape(client: AsyncClient):
    response = await client.get("/api/nowhere")
    assert response.status_code == 404
    assert set(response.json()) == {"error"}


@pytest.mark.asyncio
async def test_unexpected_failure_is_500(raw_client: AsyncClient, monkeypatch):
    async def explode(db, limit):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(event_service, "popular_events", explode)

    response = await raw_client.get("/api/events/popular")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


@pytest.mark.asyncio
async def test_seed_admin_is_idempotent(db_session):
    settings = get_settings()

    admin, created = await seed_admin(db_session)
    assert created is True
    assert admin.role == "admin"
    assert verify_password(settings.DEFAULT_ADMIN_PASSWORD, admin.hashed_password)

    again, created_again = await seed_admin(db_session)
    assert created_again is False
    assert again.id == admin.id


def test_filter_cache_key_ignores_defaults():
    assert EventFilters().cache_key() == EventFilters(category=[]).cache_key()
    assert EventFilters(category=["music"]).cache_key() != EventFilters(category=["tech"]).cache_key()
