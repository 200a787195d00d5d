"""Error taxonomy for toto-pubsub."""

from __future__ import annotations

from dataclasses import dataclass


class MessageBusError(Exception):
    """Root exception for the message bus."""


class DecodeError(MessageBusError):
    """Raised when a raw inbound payload is not a valid envelope.

    Terminal for the message: a structurally invalid payload never becomes
    valid on redelivery, so nothing in the bus retries it.
    """


@dataclass(frozen=True)
class HandlerFailure:
    """One failed handler invocation."""

    handler: str
    exception: BaseException

    def __str__(self) -> str:
        return f"{self.handler}: {type(self.exception).__name__}: {self.exception}"


class HandlerError(MessageBusError):
    """Raised when one or more matching handlers failed for a message.

    Carries every failure, not just the first.
    """

    def __init__(self, message_type: str, failures: list[HandlerFailure]) -> None:
        self.message_type = message_type
        self.failures = list(failures)
        super().__init__(
            f"{len(self.failures)} handler(s) failed for {message_type!r}: "
            + "; ".join(str(f) for f in self.failures)
        )


class AdapterError(MessageBusError):
    """Base class for broker adapter failures (publish, fetch, ack)."""


class PublishError(AdapterError):
    """Raised when sending a message to the broker fails."""

    def __init__(self, message: str, destination: str | None = None) -> None:
        self.destination = destination
        super().__init__(message)


class BrokerConnectionError(AdapterError):
    """Raised when connectivity to the broker fails."""
