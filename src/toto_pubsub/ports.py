"""Ports — broker capability contracts and the handler protocol.

Adapters declare their capability through their base class: a publish-only
(push-delivered) broker subclasses :class:`IMessagePublisher`, a broker that
needs an active fetch loop subclasses :class:`IPullQueue`. The bus reads
``supports_pull`` once at construction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, runtime_checkable

from .exceptions import AdapterError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from .envelope import MessageEnvelope


class IMessagePublisher(ABC):
    """
    Port for sending envelopes to a broker and decoding what it delivers.

    Infrastructure packages provide concrete adapters.
    """

    supports_pull: ClassVar[bool] = False

    @abstractmethod
    async def publish(self, destination: str, message: MessageEnvelope) -> None:
        """
        Send *message* to *destination* (queue or topic name).

        Raises:
            PublishError: when the broker call fails.
        """

    @abstractmethod
    def decode(self, raw: Any) -> MessageEnvelope:
        """
        Strip transport framing from *raw* and return the envelope.

        Raises:
            DecodeError: when *raw* is not a valid envelope.
        """


class IPullQueue(IMessagePublisher):
    """
    Port for brokers that require an active fetch loop (e.g. SQS).

    The bus installs exactly one inbound callback; the polling engine drives
    ``receive_batch`` / ``deliver`` / ``acknowledge``.
    """

    supports_pull: ClassVar[bool] = True

    def __init__(self) -> None:
        self._inbound_handler: Callable[[Any], Awaitable[None]] | None = None

    def set_inbound_handler(self, callback: Callable[[Any], Awaitable[None]]) -> None:
        """Install the callback invoked for every raw inbound message."""
        if self._inbound_handler is not None:
            raise AdapterError(f"{type(self).__name__} already has an inbound handler")
        self._inbound_handler = callback

    async def deliver(self, raw: Any) -> None:
        """Hand one raw inbound message to the installed callback."""
        if self._inbound_handler is None:
            raise AdapterError("Inbound handler not set")
        await self._inbound_handler(raw)

    @abstractmethod
    async def initialize(self) -> None:
        """Resolve adapter-owned handles before the first fetch. Idempotent."""

    @abstractmethod
    async def receive_batch(self) -> list[Any]:
        """Fetch one batch of raw messages (may long-poll)."""

    @abstractmethod
    async def acknowledge(self, raw: Any) -> None:
        """Delete/ack one successfully processed raw message."""

    @abstractmethod
    async def close(self) -> None:
        """Release adapter-owned resources."""

    @property
    def destination_name(self) -> str:
        """Name of the queue this adapter polls."""
        return type(self).__name__


@runtime_checkable
class MessageHandler(Protocol):
    """
    Consumer of one or more message types.

    Handlers must be idempotent: delivery is at-least-once.
    """

    def handled_message_types(self) -> Iterable[str]:
        """Types of message handled by this handler."""
        ...

    async def on_message(self, message: MessageEnvelope) -> None:
        """Process an envelope whose type is one of ``handled_message_types``."""
        ...


class MessageBusFactory(ABC):
    """Creates the broker adapter a :class:`~toto_pubsub.bus.MessageBus` wraps."""

    @abstractmethod
    def create_adapter(self) -> IMessagePublisher:
        """Return a configured adapter."""
