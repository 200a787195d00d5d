"""MessageEnvelope — canonical immutable message record."""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import DecodeError


def now_millis() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class MessageEnvelope(BaseModel):
    """Immutable wrapper for messages over the wire.

    The wire shape is ``{"type", "cid", "timestamp", "payload"}``; the
    correlation id is exposed as ``correlation_id`` in Python.
    The payload is handed to handlers by reference.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = Field(..., description="Event name, e.g. 'order.created'")
    correlation_id: str = Field(..., alias="cid")
    timestamp: int | float = Field(..., description="Milliseconds since epoch")
    payload: dict[str, Any] | list[Any]

    @classmethod
    def create(
        cls,
        type: str,  # noqa: A002
        correlation_id: str,
        payload: dict[str, Any] | list[Any],
    ) -> MessageEnvelope:
        """Build a new envelope stamped with the current time."""
        return cls.model_construct(
            type=type,
            correlation_id=correlation_id,
            timestamp=now_millis(),
            payload=payload,
        )

    @staticmethod
    def is_valid(candidate: object) -> bool:
        """Return True if *candidate* has the envelope wire shape.

        Never raises; missing keys or wrong types yield False.
        """
        if not isinstance(candidate, Mapping):
            return False
        type_ = candidate.get("type")
        cid = candidate.get("cid")
        timestamp = candidate.get("timestamp")
        payload = candidate.get("payload")
        if not isinstance(type_, str) or not isinstance(cid, str):
            return False
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            return False
        return isinstance(payload, (dict, list))

    @classmethod
    def from_wire(cls, data: object) -> MessageEnvelope:
        """Build an envelope from a decoded wire record.

        Raises:
            DecodeError: if *data* fails :meth:`is_valid`.
        """
        if not cls.is_valid(data):
            raise DecodeError(f"Invalid message envelope: {data!r}")
        record = cast("Mapping[str, Any]", data)
        return cls.model_construct(
            type=record["type"],
            correlation_id=record["cid"],
            timestamp=record["timestamp"],
            payload=record["payload"],
        )

    def to_wire(self) -> dict[str, Any]:
        """Return the interoperable wire record."""
        return {
            "type": self.type,
            "cid": self.correlation_id,
            "timestamp": self.timestamp,
            "payload": self.payload,
        }
