"""API test fixtures — app wired to an in-memory engine with fake credentials.

Invariants:
    - get_relay_engine is overridden so every route sees the same test engine
    - db_manager is patched for readiness probes and restored afterwards
    - WebSocket tests share one event loop (TestClient used as a context manager)
"""

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

import relay.infrastructure.database as db_module
from relay.api.dependencies import get_relay_engine
from relay.infrastructure.database import DatabaseSessionManager
from relay.main import app
from relay.services.connection_registry import ConnectionRegistry
from relay.services.pending_store import PendingDeliveryStore
from relay.services.relay_engine import RelayEngine

from tests.services.fakes import ACCOUNTS, FakeResolver


@pytest.fixture
def engine():
    return RelayEngine(
        ConnectionRegistry(), PendingDeliveryStore(), FakeResolver(ACCOUNTS),
    )


@pytest.fixture
def ws_client(engine):
    app.dependency_overrides[get_relay_engine] = lambda: engine
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def client(engine):
    app.dependency_overrides[get_relay_engine] = lambda: engine

    original_manager = db_module.db_manager
    manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    db_module.db_manager = manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
    await manager.close()
