"""Relay Message Formatting — pure functions for user-visible wire text.

Invariants:
    - Relayed text is exactly "[" + sender + "] → " + payload (U+2192 arrow)
    - Notices go back to the sender only and are never relayed
    - All functions are pure (no IO, no async)

Design Decisions:
    - Framing is kept byte-for-byte compatible with existing clients, which
      split on the first "] → " to recover the sender
    - Notices are plain text (not JSON) for the same reason: legacy clients
      render whatever text frame arrives
"""

RELAY_ARROW = "→"

POLICY_DENIED_NOTICE = "❌ Communication not allowed with this role."
UNKNOWN_TARGET_NOTICE = "❌ Recipient '{target}' does not exist."
INVALID_MESSAGE_NOTICE = "❌ Invalid message: {reason}"
SERVICE_UNAVAILABLE_NOTICE = "❌ Message could not be processed, try again later."


def format_relayed_message(sender: str, payload: str) -> str:
    """Frame a payload with its sender for delivery to the target."""
    return f"[{sender}] {RELAY_ARROW} {payload}"


def format_unknown_target_notice(target: str) -> str:
    return UNKNOWN_TARGET_NOTICE.format(target=target)


def format_invalid_message_notice(reason: str) -> str:
    return INVALID_MESSAGE_NOTICE.format(reason=reason)
