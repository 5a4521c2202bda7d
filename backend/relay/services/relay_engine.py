"""Relay Engine — per-connection state machine for authentication, routing and buffering.

Invariants:
    - HANDSHAKING → AUTHENTICATED → CLOSED, nothing else; a rejected handshake
      goes straight to CLOSED without touching the registry
    - Queued messages are flushed, in order, before the connection is marked
      AUTHENTICATED (the transport does not read application frames until
      connect() returns)
    - A connection still in its handshake never receives a live send: deliver()
      queues for it, and the flush keeps draining until the queue is empty, so
      per-sender order survives messages that arrive mid-flush
    - At most one flush per identity runs at a time; a superseding connection
      drains only after the previous flush has finished or re-queued its tail
    - Unknown targets are reported and dropped, never queued
    - Policy denials are reported and dropped; the sender's connection stays open
    - A failed send to a target is never surfaced: the message is queued instead
    - Identity and role bound at connect time are authoritative for the
      lifetime of the connection
    - Self-messaging is not special-cased

Design Decisions:
    - Registry, store and resolver are injected, so tests wire independent
      instances per case; the engine itself only tracks in-flight handshakes
      (connections not yet ready, and one flush marker per identity)
    - Notices are sent by the engine, not the route: one place decides what
      the sender hears back
    - A flush interrupted by a broken new connection re-queues the undelivered
      tail at the front and disconnects that session (DeliveryError re-raised)
"""

import asyncio
import logging
from dataclasses import dataclass

from relay.core.boundary_protocols import Connection, CredentialResolver
from relay.core.domain_types import (
    ConnectionState, DeliveryOutcome, Identity, Principal, Role,
)
from relay.core.errors import (
    AuthenticationError, DatabaseError, DeliveryError, EnvelopeValidationError,
    ErrorContext, PolicyDeniedError, RelayError, UnknownTargetError,
)
from relay.core.format_messages import format_relayed_message
from relay.core.policy import is_allowed
from relay.schemas.envelope import InboundEnvelope, parse_envelope
from relay.services.connection_registry import ConnectionRegistry
from relay.services.pending_store import PendingDeliveryStore, PendingMessage

logger = logging.getLogger(__name__)

# Application close codes (4000-4999 are reserved for applications)
CLOSE_SUPERSEDED = 4000
CLOSE_GOING_AWAY = 1001

_NOTICE_OUTCOMES: dict[type[RelayError], DeliveryOutcome] = {
    EnvelopeValidationError: DeliveryOutcome.INVALID,
    UnknownTargetError: DeliveryOutcome.UNKNOWN_TARGET,
    PolicyDeniedError: DeliveryOutcome.DENIED,
    DatabaseError: DeliveryOutcome.UNAVAILABLE,
}


@dataclass
class RelaySession:
    """One authenticated connection and the principal bound to it."""
    principal: Principal
    connection: Connection
    default_target: str | None = None
    state: ConnectionState = ConnectionState.HANDSHAKING

    @property
    def identity(self) -> Identity:
        return self.principal.identity

    @property
    def role(self) -> Role:
        return self.principal.role


class RelayEngine:
    """Coordinates connect / message / disconnect over shared registry and store."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        store: PendingDeliveryStore,
        resolver: CredentialResolver,
    ):
        self.registry = registry
        self.store = store
        self.resolver = resolver
        # Registered connections whose pending flush has not completed
        self._not_ready: set[Connection] = set()
        # identity → event set when its running flush finishes
        self._flushing: dict[Identity, asyncio.Event] = {}

    # --- connect ---------------------------------------------------------------

    async def connect(
        self,
        connection: Connection,
        token: str | None,
        default_target: str | None = None,
    ) -> RelaySession:
        """Authenticate, register and flush. Raises AuthenticationError on bad token."""
        if not token:
            logger.warning(
                "Rejected handshake: missing token",
                extra={"error_code": "AUTHENTICATION_FAILED"},
            )
            raise AuthenticationError("Missing credential token")
        try:
            principal = await self.resolver.resolve_identity(token)
        except AuthenticationError as e:
            logger.warning(
                "Rejected handshake: %s", e.message,
                extra={"error_code": e.code},
            )
            raise

        session = RelaySession(
            principal=principal, connection=connection,
            default_target=default_target,
        )
        self._not_ready.add(connection)
        try:
            previous = self.registry.register(principal.identity, connection)
            if previous is not None:
                logger.info(
                    "Superseded previous connection for %s", principal.identity,
                    extra={"identity": principal.identity},
                )
                await previous.close(
                    CLOSE_SUPERSEDED, "Replaced by a newer connection",
                )
            await self._flush_pending(session)
            # No await between the last empty drain and this point
            session.state = ConnectionState.AUTHENTICATED
        finally:
            self._not_ready.discard(connection)
        logger.info(
            "Connected %s (%s)", principal.identity, principal.role.value,
            extra={"identity": principal.identity, "role": principal.role.value},
        )
        return session

    async def _flush_pending(self, session: RelaySession) -> None:
        """Deliver everything queued for this identity, in enqueue order.

        Waits for any earlier flush of the same identity, then drains until the
        queue is empty. Messages enqueued while a send is in flight are picked
        up by the next drain.
        """
        identity = session.identity
        prior = self._flushing.get(identity)
        while prior is not None:
            await prior.wait()
            prior = self._flushing.get(identity)
        if self.registry.lookup(identity) is not session.connection:
            self.disconnect(session)
            raise DeliveryError(f"Connection for {identity} superseded before flush")

        done = asyncio.Event()
        self._flushing[identity] = done
        flushed = 0
        try:
            while pending := self.store.drain_all(identity):
                for index, message in enumerate(pending):
                    try:
                        await session.connection.send_text(message.text)
                    except DeliveryError:
                        self.store.requeue_front(identity, pending[index:])
                        logger.warning(
                            "Flush to %s interrupted after %d message(s)",
                            identity, flushed + index,
                            extra={
                                "identity": identity,
                                "pending_count": self.store.pending_count(identity),
                            },
                        )
                        self.disconnect(session)
                        raise
                flushed += len(pending)
        finally:
            del self._flushing[identity]
            done.set()
        if flushed:
            logger.info(
                "Flushed %d pending message(s) to %s", flushed, identity,
                extra={"identity": identity, "pending_count": flushed},
            )

    # --- message ---------------------------------------------------------------

    async def handle_text(self, session: RelaySession, raw: str) -> DeliveryOutcome:
        """Parse one inbound frame and route it."""
        try:
            envelope = parse_envelope(raw, session.default_target)
        except EnvelopeValidationError as e:
            e.context.identity = session.identity
            return await self._reject(session, e)
        return await self.handle_message(session, envelope)

    async def handle_message(
        self, session: RelaySession, envelope: InboundEnvelope,
    ) -> DeliveryOutcome:
        """Resolve target, apply policy, then deliver or queue."""
        if session.state is not ConnectionState.AUTHENTICATED:
            raise AuthenticationError(
                f"Connection is {session.state.value}, not authenticated",
            )
        target = Identity(envelope.target)
        ctx = ErrorContext(identity=session.identity, target=target)
        try:
            target_role = await self.resolver.role_of(target)
            if target_role is None:
                raise UnknownTargetError(target, ctx)
            if not is_allowed(session.role, target_role):
                raise PolicyDeniedError(
                    session.role.value, target_role.value, ctx,
                )
        except (UnknownTargetError, PolicyDeniedError, DatabaseError) as e:
            return await self._reject(session, e)

        message = PendingMessage(
            sender=session.identity,
            text=format_relayed_message(session.identity, envelope.payload),
        )
        return await self.deliver(target, message)

    async def deliver(
        self, target: Identity, message: PendingMessage,
    ) -> DeliveryOutcome:
        """Send to the live connection if any, otherwise (or on failure) queue.

        A connection still flushing its queue counts as not live: the message
        joins the queue behind what is being flushed.
        """
        connection = self.registry.lookup(target)
        if (
            connection is not None
            and connection.is_open
            and connection not in self._not_ready
        ):
            try:
                await connection.send_text(message.text)
            except DeliveryError as e:
                logger.warning(
                    "Delivery to %s failed, queueing instead: %s",
                    target, e.message,
                    extra={"identity": message.sender, "target": target},
                )
            else:
                logger.debug(
                    "Delivered %s → %s", message.sender, target,
                    extra={
                        "identity": message.sender, "target": target,
                        "outcome": DeliveryOutcome.DELIVERED.value,
                    },
                )
                return DeliveryOutcome.DELIVERED

        depth = self.store.enqueue(target, message)
        logger.info(
            "Queued message for %s", target,
            extra={
                "identity": message.sender, "target": target,
                "pending_count": depth,
                "outcome": DeliveryOutcome.QUEUED.value,
            },
        )
        return DeliveryOutcome.QUEUED

    async def _reject(
        self, session: RelaySession, error: RelayError,
    ) -> DeliveryOutcome:
        """Send a notice to the sender only. Transport failures propagate."""
        outcome = _NOTICE_OUTCOMES[type(error)]
        log = logger.error if isinstance(error, DatabaseError) else logger.info
        log(
            "Message from %s not relayed: %s", session.identity, error.message,
            extra={
                "identity": session.identity,
                "target": error.context.target,
                "error_code": error.code,
                "outcome": outcome.value,
            },
        )
        await session.connection.send_text(error.to_notice())
        return outcome

    # --- disconnect ------------------------------------------------------------

    def disconnect(self, session: RelaySession) -> None:
        """Identity-guarded unregister. Idempotent."""
        if session.state is ConnectionState.CLOSED:
            return
        removed = self.registry.unregister(session.identity, session.connection)
        session.state = ConnectionState.CLOSED
        logger.info(
            "Disconnected %s%s", session.identity,
            "" if removed else " (already superseded)",
            extra={"identity": session.identity},
        )

    async def shutdown(self) -> None:
        """Close every live connection (process shutdown)."""
        entries = self.registry.connections()
        for identity, connection in entries:
            self.registry.unregister(identity, connection)
            await connection.close(CLOSE_GOING_AWAY, "Server shutting down")
        if entries:
            logger.info("Closed %d live connection(s) on shutdown", len(entries))
