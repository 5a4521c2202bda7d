"""Service test fixtures — independent registry, store, resolver and engine per test.

Invariants:
    - Every test gets fresh ConnectionRegistry / PendingDeliveryStore instances
    - Default accounts (fakes.ACCOUNTS): alice, bob ORDINARY; carol, dave PRIVILEGED
"""

import pytest

from relay.services.connection_registry import ConnectionRegistry
from relay.services.pending_store import PendingDeliveryStore
from relay.services.relay_engine import RelayEngine

from tests.services.fakes import ACCOUNTS, FakeResolver


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def store():
    return PendingDeliveryStore()


@pytest.fixture
def resolver():
    return FakeResolver(ACCOUNTS)


@pytest.fixture
def engine(registry, store, resolver):
    return RelayEngine(registry, store, resolver)
