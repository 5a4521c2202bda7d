"""Connection Registry — live identity → connection presence map.

Invariants:
    - At most one authoritative connection per identity
    - register() overwrites unconditionally and hands back the superseded handle
    - unregister() removes only if the stored handle `is` the given one, so a
      late disconnect of a superseded connection never evicts its replacement
    - Every method is a synchronous critical section (no await inside), hence
      atomic with respect to every other connection task on the event loop

Design Decisions:
    - Owned instance injected into the engine instead of a module-level dict:
      tests build as many independent registries as they need
    - No lock: asyncio tasks only interleave at await points, and none exist here
"""

import logging

from relay.core.boundary_protocols import Connection
from relay.core.domain_types import Identity

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Identity → live connection map, one entry per identity."""

    def __init__(self):
        self._connections: dict[Identity, Connection] = {}

    def register(
        self, identity: Identity, connection: Connection,
    ) -> Connection | None:
        """Bind identity to connection. Returns the previous connection, if any."""
        previous = self._connections.get(identity)
        self._connections[identity] = connection
        if previous is connection:
            return None
        return previous

    def lookup(self, identity: Identity) -> Connection | None:
        return self._connections.get(identity)

    def unregister(self, identity: Identity, connection: Connection) -> bool:
        """Remove the mapping only if it still points at this exact connection."""
        current = self._connections.get(identity)
        if current is not connection:
            if current is not None:
                logger.debug(
                    "Ignored stale unregister for %s", identity,
                    extra={"identity": identity},
                )
            return False
        del self._connections[identity]
        return True

    def is_online(self, identity: Identity) -> bool:
        return identity in self._connections

    def online_count(self) -> int:
        return len(self._connections)

    def connections(self) -> list[tuple[Identity, Connection]]:
        """Snapshot of current entries (safe to iterate across awaits)."""
        return list(self._connections.items())
