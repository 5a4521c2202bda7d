"""Domain Types — rich types that replace bare primitives across the relay.

Invariants:
    - Identity wraps str — the only routing key the relay ever holds
    - Role is a closed set: ORDINARY, PRIVILEGED
    - ConnectionState transitions only HANDSHAKING → AUTHENTICATED → CLOSED
      (or HANDSHAKING → CLOSED on a rejected handshake)

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and JWT claims without custom encoders
    - Role parsing accepts the labels issued by the legacy identity service
      ("user", "merchant", "admin") so existing tokens keep working
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

Identity = NewType("Identity", str)


# ─── Enums ───────────────────────────────────────────────────────

class Role(str, Enum):
    """Coarse-grained participant category governing who may message whom."""
    ORDINARY = "ordinary"
    PRIVILEGED = "privileged"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            alias = _ROLE_ALIASES.get(normalized)
            if alias is not None:
                return cls(alias)
            for member in cls:
                if member.value == normalized:
                    return member
        return None


# Legacy labels → canonical values
_ROLE_ALIASES = {
    "user": "ordinary",
    "merchant": "privileged",
    "admin": "privileged",
}


class ConnectionState(str, Enum):
    """Per-connection lifecycle. No reconnect state — clients reconnect themselves."""
    HANDSHAKING = "handshaking"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


class DeliveryOutcome(str, Enum):
    """What happened to one inbound message."""
    DELIVERED = "delivered"
    QUEUED = "queued"
    UNKNOWN_TARGET = "unknown_target"
    DENIED = "denied"
    INVALID = "invalid"
    UNAVAILABLE = "unavailable"


# ─── Value Objects ───────────────────────────────────────────────

@dataclass(frozen=True)
class Principal:
    """A resolved credential: who is speaking and in which role."""
    identity: Identity
    role: Role
