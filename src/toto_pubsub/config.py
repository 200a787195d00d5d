"""Configuration records for queues and the polling engine."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_BACKOFF_SECONDS = 5.0


@dataclass(frozen=True)
class QueueConfig:
    """Pull-queue settings owned by the adapter.

    Attributes:
        destination_name: Queue (or topic) identifier the adapter polls.
        batch_size: Maximum messages returned by one fetch.
        wait_time_seconds: Long-poll wait for one fetch.
        visibility_timeout: Seconds a received message stays hidden from
            other consumers. None keeps the broker's queue default.
    """

    destination_name: str
    batch_size: int = 10
    wait_time_seconds: int = 20
    visibility_timeout: int | None = None

    def __post_init__(self) -> None:
        if not self.destination_name:
            raise ValueError("destination_name must not be empty")
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.wait_time_seconds < 0:
            raise ValueError("wait_time_seconds must be >= 0")
        if self.visibility_timeout is not None and self.visibility_timeout < 0:
            raise ValueError("visibility_timeout must be >= 0")


@dataclass(frozen=True)
class PollingConfig:
    """Polling engine settings.

    Attributes:
        backoff_seconds: Fixed wait after a failed fetch before retrying.
    """

    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS

    def __post_init__(self) -> None:
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be >= 0")
