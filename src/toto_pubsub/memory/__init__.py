"""In-memory messaging adapters for testing."""

from __future__ import annotations

from .publisher import InMemoryPublisher
from .queue import InMemoryMessage, InMemoryQueue

__all__ = [
    "InMemoryMessage",
    "InMemoryPublisher",
    "InMemoryQueue",
]
