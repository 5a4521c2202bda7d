"""Pending-Delivery Store — per-identity FIFO of messages awaiting a connection.

Invariants:
    - enqueue() appends, creating the queue on first use
    - drain_all() removes and returns the whole queue in one step: a message is
      either in the drained batch or in a fresh post-drain queue, never both,
      never neither
    - requeue_front() puts an undelivered tail back ahead of anything enqueued
      since the drain, preserving per-sender order
    - Unclaimed queues live as long as the process (accepted limitation)

Design Decisions:
    - deque per identity: O(1) append and prepend
    - Empty queues are deleted, so `identity in store` means "has pending"
    - Same concurrency model as ConnectionRegistry: no await inside any method
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

from relay.core.domain_types import Identity


@dataclass(frozen=True)
class PendingMessage:
    """A rendered message queued for an absent identity."""
    sender: Identity
    text: str
    enqueued_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class PendingDeliveryStore:
    """Identity → ordered queue of not-yet-delivered messages."""

    def __init__(self):
        self._queues: dict[Identity, deque[PendingMessage]] = {}

    def enqueue(self, identity: Identity, message: PendingMessage) -> int:
        """Append message for identity. Returns the queue length afterwards."""
        queue = self._queues.setdefault(identity, deque())
        queue.append(message)
        return len(queue)

    def drain_all(self, identity: Identity) -> list[PendingMessage]:
        queue = self._queues.pop(identity, None)
        return list(queue) if queue else []

    def requeue_front(
        self, identity: Identity, messages: Iterable[PendingMessage],
    ) -> None:
        messages = list(messages)
        if not messages:
            return
        queue = self._queues.setdefault(identity, deque())
        queue.extendleft(reversed(messages))

    def pending_count(self, identity: Identity) -> int:
        queue = self._queues.get(identity)
        return len(queue) if queue else 0

    def total_pending(self) -> int:
        return sum(len(q) for q in self._queues.values())

    def __contains__(self, identity: object) -> bool:
        return identity in self._queues
