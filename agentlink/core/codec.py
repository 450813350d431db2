"""Envelope codec multiplexing state updates over an application channel.

State updates travel as one JSON text frame::

    {"type": "cf_agent_state", "state": <any JSON value>}

Every other frame on the channel is application traffic. Decoding therefore
never raises: anything that is not exactly a JSON object tagged with the
reserved discriminator is reported as ``NOT_AN_ENVELOPE``.
"""
from __future__ import annotations

import json
from typing import Any

from agentlink.core.models import NOT_AN_ENVELOPE, DecodeResult, StateEnvelope, TransportMessage
from agentlink.errors import StateEncodingError

# Reserved; application messages must not use it as their own ``type``.
STATE_MESSAGE_TYPE = "cf_agent_state"


def encode_state(state: Any) -> str:
    """Serialize ``state`` into a control envelope text frame."""
    try:
        return json.dumps(
            {"type": STATE_MESSAGE_TYPE, "state": state},
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError, RecursionError) as exc:
        raise StateEncodingError(f"State is not JSON serializable: {exc}") from exc


def decode_message(message: TransportMessage) -> DecodeResult:
    """Classify an inbound message as a state envelope or application traffic."""
    if not isinstance(message.data, str):
        return NOT_AN_ENVELOPE
    try:
        parsed = json.loads(message.data)
    except (ValueError, RecursionError):
        return NOT_AN_ENVELOPE
    if not isinstance(parsed, dict) or parsed.get("type") != STATE_MESSAGE_TYPE:
        return NOT_AN_ENVELOPE
    return StateEnvelope(state=parsed.get("state"))
