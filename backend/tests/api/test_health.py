"""Health & Readiness endpoints — liveness, DB readiness, error envelopes."""

from httpx import ASGITransport, AsyncClient

import relay.infrastructure.database as db_module
from relay.api.dependencies import get_relay_engine
from relay.core.domain_types import Identity
from relay.main import app
from relay.services.pending_store import PendingMessage

from tests.services.fakes import FakeConnection


async def test_liveness_always_ok(client):
    response = await client.get("/api/v1/health/")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_ready_reports_relay_counters(client, engine):
    engine.registry.register(Identity("carol"), FakeConnection("carol"))
    engine.store.enqueue(
        Identity("alice"), PendingMessage(sender=Identity("carol"), text="[carol] → hi"),
    )

    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ready"
    assert body["relay"] == {"connections": 1, "pending_messages": 1}


async def test_ready_without_database_returns_error_envelope(client):
    db_module.db_manager = None

    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 503
    error = response.json()["error"]
    assert error["code"] == "DATABASE_ERROR"
    assert error["category"] == "database"
    assert error["severity"] == "critical"
    assert "timestamp" in error


async def test_unexpected_error_returns_opaque_500(client):
    def broken_engine():
        raise RuntimeError("Relay engine not initialized")

    app.dependency_overrides[get_relay_engine] = broken_engine
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as raw_client:
        response = await raw_client.get("/api/v1/health/ready")

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "INTERNAL_ERROR"
    assert "not initialized" not in response.text
