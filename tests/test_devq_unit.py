"""Unit tests for DevQPublisher using httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from toto_pubsub.devq import DevQPublisher
from toto_pubsub.envelope import MessageEnvelope
from toto_pubsub.exceptions import DecodeError, PublishError

ENDPOINT = "http://localhost:8000/msg"


class Recorder:
    def __init__(self, status: int = 200) -> None:
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, text="nope" if self.status >= 400 else "")


@pytest.mark.asyncio
async def test_publish_posts_wire_record_with_token() -> None:
    recorder = Recorder()
    publisher = DevQPublisher(
        ENDPOINT,
        token_provider=lambda: "tok-123",
        transport=httpx.MockTransport(recorder),
    )
    envelope = MessageEnvelope.create("order.created", "c-1", {"id": 42})

    await publisher.publish("orders", envelope)

    [request] = recorder.requests
    assert request.method == "POST"
    assert str(request.url) == ENDPOINT
    assert request.headers["Authorization"] == "Bearer tok-123"
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["X-Correlation-ID"] == "c-1"
    assert json.loads(request.content) == envelope.to_wire()


@pytest.mark.asyncio
async def test_publish_without_token_provider_has_no_auth_header() -> None:
    recorder = Recorder()
    publisher = DevQPublisher(ENDPOINT, transport=httpx.MockTransport(recorder))
    await publisher.publish("orders", MessageEnvelope.create("X", "c", {}))
    assert "Authorization" not in recorder.requests[0].headers


@pytest.mark.asyncio
async def test_http_error_status_raises_publish_error() -> None:
    publisher = DevQPublisher(ENDPOINT, transport=httpx.MockTransport(Recorder(503)))
    with pytest.raises(PublishError, match="HTTP 503") as exc_info:
        await publisher.publish("orders", MessageEnvelope.create("X", "c", {}))
    assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)


@pytest.mark.asyncio
async def test_transport_error_raises_publish_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    publisher = DevQPublisher(ENDPOINT, transport=httpx.MockTransport(refuse))
    with pytest.raises(PublishError, match="Failed to reach DevQ"):
        await publisher.publish("orders", MessageEnvelope.create("X", "c", {}))


def test_decode_validates_json_body() -> None:
    publisher = DevQPublisher(ENDPOINT)
    record: dict[str, Any] = {"type": "X", "cid": "c", "timestamp": 1, "payload": {}}
    assert publisher.decode(record).type == "X"
    with pytest.raises(DecodeError):
        publisher.decode({"type": "X"})
