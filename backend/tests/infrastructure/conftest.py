"""Infrastructure test fixtures — in-memory account directory database.

Invariants:
    - Every test gets a fresh in-memory SQLite database with the accounts table
    - Seeded accounts cover canonical, legacy and unparseable role labels
"""

import pytest

from relay.db.base import Base
from relay.infrastructure.database import DatabaseSessionManager
from relay.models.account import Account


@pytest.fixture
async def db_manager():
    manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield manager
    await manager.close()


@pytest.fixture
async def seed_accounts(db_manager):
    async with db_manager.session() as session:
        session.add_all([
            Account(username="Alice", role="ordinary"),
            Account(username="carol", role="privileged"),
            Account(username="legacy", role="MERCHANT"),
            Account(username="broken", role="wizard"),
        ])
        await session.commit()
