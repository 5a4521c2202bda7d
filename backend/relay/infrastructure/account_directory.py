"""Account Directory — role lookup by identity name over the accounts table.

Invariants:
    - Lookup is case-insensitive (usernames are unique ignoring case)
    - Missing account → None ("unknown"), never an exception
    - Unparseable stored role → None, logged (treated as unknown, not guessed)
    - DB failures surface as DatabaseError via DatabaseSessionManager
"""

import logging

from sqlalchemy import func, select

from relay.core.domain_types import Identity, Role
from relay.infrastructure.database import DatabaseSessionManager
from relay.models.account import Account

logger = logging.getLogger(__name__)


class SqlAccountDirectory:
    """RoleDirectory backed by the identity service's accounts table."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def get_role(self, identity: Identity) -> Role | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(Account.role).where(
                    func.lower(Account.username) == identity.lower(),
                ),
            )
            stored = result.scalar_one_or_none()
        if stored is None:
            return None
        try:
            return Role(stored)
        except ValueError:
            logger.warning(
                "Account %s has unrecognized role %r", identity, stored,
                extra={"identity": identity},
            )
            return None
