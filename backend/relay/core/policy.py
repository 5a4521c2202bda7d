"""Authorization Policy — which role pairings may exchange messages.

Invariants:
    - Pure predicate: no IO, no state, no logging
    - Denied only when sender AND target are both ORDINARY
    - Unknown targets never reach this function (decided by the engine first)
"""

from relay.core.domain_types import Role


def is_allowed(sender_role: Role, target_role: Role) -> bool:
    """Return True if a sender with sender_role may message target_role."""
    return not (sender_role == Role.ORDINARY and target_role == Role.ORDINARY)
