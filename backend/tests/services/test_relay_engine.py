"""Integration Tests: RelayEngine — connect, route, buffer, disconnect.

Invariants:
    - Queued messages reach a reconnecting identity in order, framed "[sender] → text"
    - Online targets receive immediately and no queue entry is created
    - Unknown targets and policy denials produce a sender-only notice
    - Stale disconnects never evict a live replacement

Design Decisions:
    - Happy paths and end-to-end scenarios here; races and failure modes live in
      test_relay_engine_resilience.py
"""

import pytest

from relay.core.domain_types import (
    ConnectionState, DeliveryOutcome, Identity, Role,
)
from relay.core.errors import AuthenticationError
from relay.core.format_messages import POLICY_DENIED_NOTICE
from relay.services.relay_engine import CLOSE_SUPERSEDED

from tests.services.fakes import FakeConnection, token_for


def _frame(target: str, message: str) -> str:
    return f'{{"to": "{target}", "message": "{message}"}}'


async def _connect(engine, name: str, **kwargs):
    conn = FakeConnection(name)
    session = await engine.connect(conn, token_for(name), **kwargs)
    return session, conn


# ==============================================================================
# Connect
# ==============================================================================


async def test_connect_registers_and_authenticates(engine, registry):
    session, conn = await _connect(engine, "alice")

    assert session.state is ConnectionState.AUTHENTICATED
    assert session.identity == "alice"
    assert registry.lookup(Identity("alice")) is conn


@pytest.mark.parametrize("token", [None, "", "garbage", "token-mallory"])
async def test_bad_token_is_rejected_without_registry_mutation(
    engine, registry, token,
):
    with pytest.raises(AuthenticationError):
        await engine.connect(FakeConnection(), token)
    assert registry.online_count() == 0


async def test_second_connection_supersedes_and_closes_first(engine, registry):
    _, first = await _connect(engine, "alice")
    _, second = await _connect(engine, "alice")

    assert registry.lookup(Identity("alice")) is second
    assert first.closed_with is not None
    assert first.closed_with[0] == CLOSE_SUPERSEDED
    assert second.closed_with is None


# ==============================================================================
# Message routing
# ==============================================================================


async def test_privileged_to_online_ordinary_is_delivered_immediately(engine, store):
    _, alice_conn = await _connect(engine, "alice")
    carol, _ = await _connect(engine, "carol")

    outcome = await engine.handle_text(carol, _frame("alice", "hi"))

    assert outcome is DeliveryOutcome.DELIVERED
    assert alice_conn.sent == ["[carol] → hi"]
    assert "alice" not in store


async def test_message_to_offline_target_is_queued(engine, store):
    carol, carol_conn = await _connect(engine, "carol")

    outcome = await engine.handle_text(carol, _frame("alice", "later"))

    assert outcome is DeliveryOutcome.QUEUED
    assert store.pending_count(Identity("alice")) == 1
    assert carol_conn.sent == []


async def test_queued_message_is_flushed_on_connect_and_queue_emptied(engine, store):
    carol, _ = await _connect(engine, "carol")
    await engine.handle_text(carol, _frame("alice", "hello"))

    _, alice_conn = await _connect(engine, "alice")

    assert alice_conn.sent == ["[carol] → hello"]
    assert store.pending_count(Identity("alice")) == 0


async def test_two_offline_messages_arrive_in_send_order(engine):
    carol, _ = await _connect(engine, "carol")
    await engine.handle_text(carol, _frame("alice", "first"))
    await engine.handle_text(carol, _frame("alice", "second"))

    _, alice_conn = await _connect(engine, "alice")

    assert alice_conn.sent == ["[carol] → first", "[carol] → second"]


async def test_ordinary_to_ordinary_is_denied_with_notice(engine, store):
    _, alice_conn = await _connect(engine, "alice")
    bob, bob_conn = await _connect(engine, "bob")

    outcome = await engine.handle_text(bob, _frame("alice", "hi"))

    assert outcome is DeliveryOutcome.DENIED
    assert bob_conn.sent == [POLICY_DENIED_NOTICE]
    assert alice_conn.sent == []
    assert "alice" not in store
    assert bob.state is ConnectionState.AUTHENTICATED


async def test_unknown_target_gets_notice_and_no_queue(engine, store):
    carol, carol_conn = await _connect(engine, "carol")

    outcome = await engine.handle_text(carol, _frame("zed", "anyone?"))

    assert outcome is DeliveryOutcome.UNKNOWN_TARGET
    assert len(carol_conn.sent) == 1
    assert "zed" in carol_conn.sent[0]
    assert "zed" not in store
    assert store.total_pending() == 0


async def test_invalid_frame_gets_notice(engine):
    carol, carol_conn = await _connect(engine, "carol")

    outcome = await engine.handle_text(carol, "no target here")

    assert outcome is DeliveryOutcome.INVALID
    assert carol_conn.sent[0].startswith("❌ Invalid message:")


async def test_plain_text_uses_default_target(engine):
    _, alice_conn = await _connect(engine, "alice")
    carol, _ = await _connect(engine, "carol", default_target="alice")

    await engine.handle_text(carol, "plain hello")

    assert alice_conn.sent == ["[carol] → plain hello"]


async def test_self_message_follows_policy(engine):
    alice, alice_conn = await _connect(engine, "alice")
    carol, carol_conn = await _connect(engine, "carol")

    assert await engine.handle_text(alice, _frame("alice", "me")) is DeliveryOutcome.DENIED
    assert await engine.handle_text(carol, _frame("carol", "me")) is DeliveryOutcome.DELIVERED
    assert carol_conn.sent == ["[carol] → me"]
    assert alice_conn.sent == [POLICY_DENIED_NOTICE]


async def test_target_role_is_resolved_per_message(engine, resolver):
    carol, _ = await _connect(engine, "carol")
    await engine.handle_text(carol, _frame("alice", "one"))
    await engine.handle_text(carol, _frame("alice", "two"))
    assert resolver.role_lookups == ["alice", "alice"]


# ==============================================================================
# Disconnect
# ==============================================================================


async def test_disconnect_unregisters_and_closes_state(engine, registry):
    alice, _ = await _connect(engine, "alice")

    engine.disconnect(alice)

    assert alice.state is ConnectionState.CLOSED
    assert registry.lookup(Identity("alice")) is None


async def test_disconnect_is_idempotent(engine, registry):
    alice, _ = await _connect(engine, "alice")
    engine.disconnect(alice)
    engine.disconnect(alice)
    assert registry.online_count() == 0


async def test_stale_disconnect_keeps_new_connection_reachable(engine, registry):
    old_session, _ = await _connect(engine, "alice")
    _, new_conn = await _connect(engine, "alice")
    carol, _ = await _connect(engine, "carol")

    engine.disconnect(old_session)

    assert registry.lookup(Identity("alice")) is new_conn
    await engine.handle_text(carol, _frame("alice", "still there?"))
    assert new_conn.sent == ["[carol] → still there?"]


async def test_message_on_closed_session_is_refused(engine):
    carol, _ = await _connect(engine, "carol")
    engine.disconnect(carol)
    with pytest.raises(AuthenticationError):
        await engine.handle_text(carol, _frame("alice", "ghost"))


# ==============================================================================
# End-to-end scenario
# ==============================================================================


async def test_alice_bob_offline_buffering_scenario(engine, store, resolver):
    """bob → alice while online, then offline, then alice reconnects.

    bob holds PRIVILEGED here: ORDINARY → ORDINARY is denied by policy.
    """
    resolver.accounts["bob"] = Role.PRIVILEGED

    alice, alice_conn = await _connect(engine, "alice")
    bob, _ = await _connect(engine, "bob")

    await engine.handle_text(bob, _frame("alice", "hi"))
    assert alice_conn.sent == ["[bob] → hi"]

    engine.disconnect(alice)
    outcome = await engine.handle_text(bob, _frame("alice", "are you there?"))
    assert outcome is DeliveryOutcome.QUEUED
    assert alice_conn.sent == ["[bob] → hi"]

    _, alice_conn2 = await _connect(engine, "alice")
    assert alice_conn2.sent == ["[bob] → are you there?"]
    assert store.pending_count(Identity("alice")) == 0
