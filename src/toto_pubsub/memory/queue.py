"""InMemoryQueue — pull-queue adapter backed by asyncio queues."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..config import QueueConfig
from ..ports import IPullQueue
from ..serialization import EnvelopeSerializer

if TYPE_CHECKING:
    from ..envelope import MessageEnvelope


@dataclass
class InMemoryMessage:
    """A message as the in-memory broker hands it out."""

    body: bytes
    message_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    receive_count: int = 0


class InMemoryQueue(IPullQueue):
    """Pull queue for tests and local runs.

    Published messages go to a per-destination queue; ``receive_batch`` reads
    the configured destination. Received messages stay in flight until
    acknowledged; ``redeliver_unacked()`` plays the broker's visibility
    timeout and puts them back.
    """

    def __init__(
        self,
        config: QueueConfig | None = None,
        *,
        serializer: EnvelopeSerializer | None = None,
    ) -> None:
        super().__init__()
        self._config = config or QueueConfig("memory", wait_time_seconds=1)
        self._serializer = serializer or EnvelopeSerializer()
        self._queues: dict[str, asyncio.Queue[InMemoryMessage]] = {}
        self._in_flight: dict[str, InMemoryMessage] = {}
        self.acknowledged: list[InMemoryMessage] = []
        self.initialized = False
        self.closed = False

    @property
    def destination_name(self) -> str:
        return self._config.destination_name

    def _queue(self, name: str) -> asyncio.Queue[InMemoryMessage]:
        return self._queues.setdefault(name, asyncio.Queue())

    async def initialize(self) -> None:
        self.initialized = True

    async def publish(self, destination: str, message: MessageEnvelope) -> None:
        self.put_raw(destination, self._serializer.serialize(message))

    def put_raw(self, destination: str, body: bytes) -> InMemoryMessage:
        """Enqueue an arbitrary body, valid or not."""
        msg = InMemoryMessage(body=body)
        self._queue(destination).put_nowait(msg)
        return msg

    def decode(self, raw: Any) -> MessageEnvelope:
        if isinstance(raw, InMemoryMessage):
            raw = raw.body
        return self._serializer.deserialize(raw)

    async def receive_batch(self) -> list[Any]:
        queue = self._queue(self.destination_name)
        if queue.empty():
            wait = self._config.wait_time_seconds
            try:
                first = await asyncio.wait_for(queue.get(), timeout=wait)
            except asyncio.TimeoutError:
                return []
        else:
            first = queue.get_nowait()
        batch = [first]
        while len(batch) < self._config.batch_size and not queue.empty():
            batch.append(queue.get_nowait())
        for msg in batch:
            msg.receive_count += 1
            self._in_flight[msg.message_id] = msg
        return list(batch)

    async def acknowledge(self, raw: Any) -> None:
        msg = self._in_flight.pop(raw.message_id, None)
        if msg is not None:
            self.acknowledged.append(msg)

    def pending(self) -> int:
        """Number of messages waiting to be received."""
        return self._queue(self.destination_name).qsize()

    def in_flight(self) -> list[InMemoryMessage]:
        return list(self._in_flight.values())

    def redeliver_unacked(self) -> int:
        """Return every in-flight message to the queue. Returns how many."""
        queue = self._queue(self.destination_name)
        count = len(self._in_flight)
        for msg in self._in_flight.values():
            queue.put_nowait(msg)
        self._in_flight.clear()
        return count

    async def close(self) -> None:
        self.closed = True
