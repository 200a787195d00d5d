"""Broker-agnostic message bus — envelope, dispatch, and pull-queue polling."""

from __future__ import annotations

from .bus import MessageBus
from .config import PollingConfig, QueueConfig
from .correlation import (
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from .envelope import MessageEnvelope
from .exceptions import (
    AdapterError,
    BrokerConnectionError,
    DecodeError,
    HandlerError,
    HandlerFailure,
    MessageBusError,
    PublishError,
)
from .instrumentation import (
    BusHook,
    HookRegistry,
    get_hook_registry,
    set_hook_registry,
)
from .memory import InMemoryPublisher, InMemoryQueue
from .polling import PollerState, PollingEngine
from .ports import IMessagePublisher, IPullQueue, MessageBusFactory, MessageHandler
from .registry import HandlerRegistration, HandlerRegistry
from .serialization import EnvelopeSerializer

__all__ = [
    "AdapterError",
    "BrokerConnectionError",
    "BusHook",
    "DecodeError",
    "EnvelopeSerializer",
    "HandlerError",
    "HandlerFailure",
    "HandlerRegistration",
    "HandlerRegistry",
    "HookRegistry",
    "IMessagePublisher",
    "IPullQueue",
    "InMemoryPublisher",
    "InMemoryQueue",
    "MessageBus",
    "MessageBusError",
    "MessageBusFactory",
    "MessageEnvelope",
    "MessageHandler",
    "PollerState",
    "PollingConfig",
    "PollingEngine",
    "PublishError",
    "QueueConfig",
    "correlation_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "get_hook_registry",
    "set_correlation_id",
    "set_hook_registry",
]
