"""Pytest fixtures for toto-pubsub tests."""

from __future__ import annotations

from typing import Any

import pytest

from toto_pubsub.config import QueueConfig
from toto_pubsub.instrumentation import HookRegistry
from toto_pubsub.memory import InMemoryPublisher, InMemoryQueue


@pytest.fixture
def hooks() -> HookRegistry:
    """Fresh hook registry so tests never share instrumentation."""
    return HookRegistry()


@pytest.fixture
def memory_publisher() -> InMemoryPublisher:
    return InMemoryPublisher()


@pytest.fixture
def memory_queue() -> InMemoryQueue:
    return InMemoryQueue(QueueConfig("orders", batch_size=10, wait_time_seconds=0))


@pytest.fixture
def wire_record() -> dict[str, Any]:
    return {
        "type": "order.created",
        "cid": "c-1",
        "timestamp": 1_700_000_000_000,
        "payload": {"id": 42},
    }
