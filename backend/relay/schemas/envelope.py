"""Envelope Schemas — typed inbound message envelope validated at the socket boundary.

Invariants:
    - Every inbound frame becomes InboundEnvelope(target, payload) or raises
      EnvelopeValidationError — the engine never sees raw wire text
    - target: 1-255 chars, stripped, non-empty
    - payload: 1-65536 chars, forwarded verbatim (never stripped)

Design Decisions:
    - Two accepted frame shapes: a JSON object {"to": ..., "message": ...}, or
      plain text addressed to the default target chosen at handshake time
      (legacy clients pass ?targetUsername=... and send bare text)
    - AliasChoices over custom parsing: Pydantic handles "to"/"target" and
      "message"/"payload" natively
"""

import json

from pydantic import (
    AliasChoices, BaseModel, Field, ValidationError, field_validator,
)

from relay.core.errors import EnvelopeValidationError

MAX_PAYLOAD_CHARS = 65_536


class InboundEnvelope(BaseModel):
    """One message addressed to one target identity."""
    target: str = Field(
        min_length=1, max_length=255,
        validation_alias=AliasChoices("to", "target"),
    )
    payload: str = Field(
        min_length=1, max_length=MAX_PAYLOAD_CHARS,
        validation_alias=AliasChoices("message", "payload"),
    )

    @field_validator("target")
    @classmethod
    def strip_target(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("target cannot be empty or whitespace")
        return v


def parse_envelope(
    raw: str, default_target: str | None = None,
) -> InboundEnvelope:
    """Turn one inbound text frame into an envelope or raise EnvelopeValidationError."""
    data = _as_json_object(raw)
    if data is None:
        if not default_target:
            raise EnvelopeValidationError("no target given")
        data = {"to": default_target, "message": raw}
    elif default_target and "to" not in data and "target" not in data:
        data = {**data, "to": default_target}

    try:
        return InboundEnvelope.model_validate(data)
    except ValidationError as e:
        raise EnvelopeValidationError(_describe(e)) from e


def _as_json_object(raw: str) -> dict | None:
    """Decode raw as a JSON object; anything else is treated as plain text."""
    stripped = raw.lstrip()
    if not stripped.startswith("{"):
        return None
    try:
        data = json.loads(stripped)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(loc) for loc in first["loc"]) or "envelope"
    return f"{field}: {first['msg']}"
