"""Boundary Protocols — contracts between the relay and its collaborators.

Invariants:
    - The relay NEVER imports a concrete transport or identity system
    - All IO accessed through Protocol types, implementations injected by the shell
    - Connection identity is object identity: two handles are "the same
      connection" only if `a is b`

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Async methods where implementations do IO (socket sends, DB lookups);
      is_open is a plain property because transports expose it synchronously
"""

from typing import Protocol

from relay.core.domain_types import Identity, Principal, Role


class Connection(Protocol):
    """A live, ordered, bidirectional text channel to exactly one remote party.

    send_text raises DeliveryError on any failure; it never blocks forever.
    """

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, text: str) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


class CredentialResolver(Protocol):
    """Contract for the external identity system."""

    async def resolve_identity(self, token: str) -> Principal:
        """Resolve an opaque token or raise AuthenticationError."""
        ...

    async def role_of(self, identity: Identity) -> Role | None:
        """Role of any identity by name; None when the identity is unknown."""
        ...


class RoleDirectory(Protocol):
    """Contract for role lookup by identity — implemented by the shell."""
    async def get_role(self, identity: Identity) -> Role | None: ...
