"""Tests for MessageEnvelope."""

from __future__ import annotations

import time
from typing import Any

import pytest
from pydantic import ValidationError

from toto_pubsub.envelope import MessageEnvelope
from toto_pubsub.exceptions import DecodeError


def test_create_stamps_current_time() -> None:
    before = int(time.time() * 1000)
    e = MessageEnvelope.create("order.created", "c-1", {"id": 42})
    after = int(time.time() * 1000)
    assert e.type == "order.created"
    assert e.correlation_id == "c-1"
    assert e.payload == {"id": 42}
    assert before <= e.timestamp <= after


def test_create_keeps_payload_reference() -> None:
    payload = {"id": 42}
    e = MessageEnvelope.create("t", "c", payload)
    assert e.payload is payload


def test_envelope_frozen() -> None:
    e = MessageEnvelope.create("X", "c", {})
    with pytest.raises((ValueError, ValidationError), match=r".+"):
        e.type = "Y"  # type: ignore[misc]


def test_to_wire_uses_cid_key() -> None:
    e = MessageEnvelope.create("X", "c-9", {"a": 1})
    assert e.to_wire() == {
        "type": "X",
        "cid": "c-9",
        "timestamp": e.timestamp,
        "payload": {"a": 1},
    }


def test_constructor_accepts_alias_and_field_name() -> None:
    by_alias = MessageEnvelope(type="X", cid="c", timestamp=1, payload={})
    by_name = MessageEnvelope(type="X", correlation_id="c", timestamp=1, payload={})
    assert by_alias == by_name


def test_is_valid_accepts_well_formed(wire_record: dict[str, Any]) -> None:
    assert MessageEnvelope.is_valid(wire_record) is True


@pytest.mark.parametrize(
    "payload",
    [{}, {"nested": {"a": [1, 2]}}, [], [1, 2, 3]],
)
def test_is_valid_accepts_structured_payloads(
    wire_record: dict[str, Any], payload: Any
) -> None:
    assert MessageEnvelope.is_valid({**wire_record, "payload": payload}) is True


def test_is_valid_accepts_float_timestamp(wire_record: dict[str, Any]) -> None:
    assert MessageEnvelope.is_valid({**wire_record, "timestamp": 1.5}) is True


@pytest.mark.parametrize("missing", ["type", "cid", "timestamp", "payload"])
def test_is_valid_rejects_missing_field(
    wire_record: dict[str, Any], missing: str
) -> None:
    del wire_record[missing]
    assert MessageEnvelope.is_valid(wire_record) is False


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("type", 1),
        ("type", None),
        ("cid", 123),
        ("cid", ["c"]),
        ("timestamp", "1700000000000"),
        ("timestamp", None),
        ("timestamp", True),
        ("payload", None),
        ("payload", "text"),
        ("payload", 42),
    ],
)
def test_is_valid_rejects_wrong_types(
    wire_record: dict[str, Any], field: str, value: Any
) -> None:
    assert MessageEnvelope.is_valid({**wire_record, field: value}) is False


@pytest.mark.parametrize("candidate", [None, 0, "", "string", [], b"{}", object()])
def test_is_valid_rejects_non_mappings(candidate: Any) -> None:
    assert MessageEnvelope.is_valid(candidate) is False


def test_is_valid_does_not_mutate(wire_record: dict[str, Any]) -> None:
    snapshot = dict(wire_record)
    MessageEnvelope.is_valid(wire_record)
    assert wire_record == snapshot


def test_from_wire_builds_envelope(wire_record: dict[str, Any]) -> None:
    e = MessageEnvelope.from_wire(wire_record)
    assert e.correlation_id == "c-1"
    assert e.timestamp == 1_700_000_000_000
    assert e.payload is wire_record["payload"]


def test_from_wire_raises_decode_error(wire_record: dict[str, Any]) -> None:
    with pytest.raises(DecodeError, match="Invalid message envelope"):
        MessageEnvelope.from_wire({**wire_record, "cid": None})
