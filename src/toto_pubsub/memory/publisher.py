"""InMemoryPublisher — push-style adapter with assertion helpers for tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..ports import IMessagePublisher
from ..serialization import EnvelopeSerializer

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..envelope import MessageEnvelope


class InMemoryPublisher(IMessagePublisher):
    """In-memory publisher that records envelopes and can simulate push delivery.

    ``connect()`` a delivery callback (typically ``bus.handle_message``) to have
    every publish pushed back as a wire record, the way a push subscription
    would call the host's endpoint.
    """

    def __init__(self, serializer: EnvelopeSerializer | None = None) -> None:
        self._serializer = serializer or EnvelopeSerializer()
        self._published: list[tuple[str, MessageEnvelope]] = []
        self._push: Callable[[Any], Awaitable[None]] | None = None

    def connect(self, push: Callable[[Any], Awaitable[None]]) -> None:
        """Deliver every published message to *push*."""
        self._push = push

    async def publish(self, destination: str, message: MessageEnvelope) -> None:
        self._published.append((destination, message))
        if self._push is not None:
            await self._push(message.to_wire())

    def decode(self, raw: Any) -> MessageEnvelope:
        return self._serializer.deserialize(raw)

    def get_published(self) -> list[tuple[str, MessageEnvelope]]:
        """Return all (destination, envelope) published so far, in order."""
        return list(self._published)

    def assert_published(
        self,
        message_type: str,
        count: int = 1,
        destination: str | None = None,
    ) -> None:
        """Assert that exactly *count* messages of *message_type* were published.

        Optionally restrict to one destination. Raises AssertionError if not met.
        """
        published = self._published
        if destination is not None:
            published = [(d, m) for d, m in published if d == destination]
        matching = [m for _, m in published if m.type == message_type]
        assert len(matching) == count, (
            f"Expected {count} message(s) of type {message_type!r}, "
            f"got {len(matching)}. Published: {[m.type for _, m in published]}"
        )

    def clear(self) -> None:
        self._published.clear()
