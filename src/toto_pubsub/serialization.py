"""EnvelopeSerializer — JSON wire record <-> MessageEnvelope."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from .envelope import MessageEnvelope
from .exceptions import DecodeError


def _json_default(obj: Any) -> Any:
    """Serialize datetime-like payload values."""
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class EnvelopeSerializer:
    """Serialize/deserialize the envelope wire record as UTF-8 JSON.

    Adapters add or strip their own transport framing (base64 bodies,
    push-subscription wrappers) around what this class produces.
    """

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def serialize(self, envelope: MessageEnvelope) -> bytes:
        """Encode envelope to JSON bytes."""
        return json.dumps(envelope.to_wire(), default=_json_default).encode(
            self._encoding
        )

    def deserialize(self, raw: bytes | str | Mapping[str, Any]) -> MessageEnvelope:
        """Decode a wire record to an envelope.

        Accepts JSON bytes/str or an already-parsed mapping.

        Raises:
            DecodeError: on malformed JSON or an invalid envelope record.
        """
        if isinstance(raw, Mapping):
            return MessageEnvelope.from_wire(raw)
        try:
            text = raw.decode(self._encoding) if isinstance(raw, bytes) else raw
            data = json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as e:
            raise DecodeError(f"Malformed message body: {e}") from e
        return MessageEnvelope.from_wire(data)
