"""End-to-end: publish through a pull queue, poll, dispatch, acknowledge."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable

import pytest

from toto_pubsub.bus import MessageBus
from toto_pubsub.config import PollingConfig
from toto_pubsub.envelope import MessageEnvelope
from toto_pubsub.instrumentation import HookRegistry
from toto_pubsub.memory import InMemoryPublisher, InMemoryQueue


class OrderCreatedHandler:
    def __init__(self, log: list[str], release: asyncio.Event) -> None:
        self.log = log
        self.release = release
        self.received: list[MessageEnvelope] = []

    def handled_message_types(self) -> Iterable[str]:
        return ["order.created"]

    async def on_message(self, message: MessageEnvelope) -> None:
        self.received.append(message)
        self.log.append("handler:start")
        await self.release.wait()
        self.log.append("handler:done")


async def _wait_for(predicate: Callable[[], object], timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.mark.asyncio
async def test_publish_poll_dispatch_ack(
    memory_queue: InMemoryQueue, hooks: HookRegistry
) -> None:
    log: list[str] = []
    release = asyncio.Event()
    handler = OrderCreatedHandler(log, release)

    original_ack = memory_queue.acknowledge

    async def tracking_ack(raw: object) -> None:
        log.append("ack")
        await original_ack(raw)

    memory_queue.acknowledge = tracking_ack  # type: ignore[method-assign]

    bus = MessageBus(memory_queue, hooks=hooks)
    bus.register_handler(handler)
    await bus.start()
    try:
        await bus.publish("orders", "order.created", {"id": 42}, "c-1")
        await _wait_for(lambda: handler.received)

        received = handler.received[0]
        assert received.payload["id"] == 42
        assert received.correlation_id == "c-1"
        assert "ack" not in log

        release.set()
        await _wait_for(lambda: memory_queue.acknowledged)
        assert log == ["handler:start", "handler:done", "ack"]
    finally:
        await bus.close()

    assert memory_queue.closed


@pytest.mark.asyncio
async def test_failed_message_is_redelivered_until_handler_succeeds(
    memory_queue: InMemoryQueue, hooks: HookRegistry
) -> None:
    attempts: list[int] = []

    async def flaky(message: MessageEnvelope) -> None:
        attempts.append(message.payload["id"])
        if len(attempts) == 1:
            raise RuntimeError("transient")

    bus = MessageBus(memory_queue, hooks=hooks)
    bus.subscribe(["order.created"], flaky)
    await bus.start()
    try:
        await bus.publish("orders", "order.created", {"id": 7}, "c-7")
        await _wait_for(lambda: attempts)
        assert memory_queue.acknowledged == []

        # Visibility timeout elapses: the broker hands the message out again.
        assert memory_queue.redeliver_unacked() == 1
        await _wait_for(lambda: memory_queue.acknowledged)
    finally:
        await bus.close()

    assert attempts == [7, 7]
    assert memory_queue.acknowledged[0].receive_count == 2


@pytest.mark.asyncio
async def test_malformed_message_stays_unacknowledged(
    memory_queue: InMemoryQueue, hooks: HookRegistry
) -> None:
    bus = MessageBus(memory_queue, hooks=hooks, polling=PollingConfig(0.01))
    await bus.start()
    try:
        memory_queue.put_raw("orders", b"{not json")
        await _wait_for(lambda: memory_queue.in_flight())
    finally:
        await bus.close()

    assert memory_queue.acknowledged == []
    assert len(memory_queue.in_flight()) == 1


@pytest.mark.asyncio
async def test_push_delivery_dispatches_without_poller(hooks: HookRegistry) -> None:
    publisher = InMemoryPublisher()
    bus = MessageBus(publisher, hooks=hooks)
    received: list[MessageEnvelope] = []

    async def handler(message: MessageEnvelope) -> None:
        received.append(message)

    bus.subscribe(["order.created"], handler)
    publisher.connect(bus.handle_message)

    await bus.publish("orders", "order.created", {"id": 42}, "c-1")

    assert [m.payload for m in received] == [{"id": 42}]
    assert received[0].correlation_id == "c-1"
