"""MessageBus — publish entry point and inbound dispatch facade."""

from __future__ import annotations

import asyncio
import logging
from inspect import isawaitable
from typing import TYPE_CHECKING, Any, cast

from .correlation import (
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
)
from .envelope import MessageEnvelope
from .exceptions import (
    AdapterError,
    DecodeError,
    HandlerError,
    HandlerFailure,
    PublishError,
)
from .instrumentation import get_hook_registry
from .polling import PollingEngine
from .registry import HandlerRegistry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable
    from types import TracebackType

    from .config import PollingConfig
    from .instrumentation import HookRegistry
    from .ports import (
        IMessagePublisher,
        IPullQueue,
        MessageBusFactory,
        MessageHandler,
    )
    from .registry import HandlerRegistration

_logger = logging.getLogger("toto_pubsub.bus")


class MessageBus:
    """Broker-agnostic message bus.

    Wraps one adapter. Outbound, :meth:`publish` builds an envelope and hands
    it to the adapter. Inbound, :meth:`handle_message` decodes a raw payload
    and runs every matching handler concurrently; it returns once all of them
    settled and raises :class:`HandlerError` if any failed.

    Push-delivered brokers call :meth:`handle_message` from the host's
    delivery endpoint. For pull queues the bus installs
    :meth:`handle_message` as the adapter's inbound handler and owns a
    :class:`PollingEngine` (see :meth:`start`).

    Usage::

        bus = MessageBus(SQSQueue(connection, QueueConfig("orders")))
        bus.register_handler(OrderCreatedHandler())
        await bus.start()
        await bus.publish("orders", "order.created", {"id": 42}, "c-1")
        ...
        await bus.close()
    """

    def __init__(
        self,
        adapter: IMessagePublisher,
        *,
        registry: HandlerRegistry | None = None,
        polling: PollingConfig | None = None,
        hooks: HookRegistry | None = None,
        logger: logging.Logger | None = None,
        handler_timeout: float | None = None,
    ) -> None:
        """Initialize the bus.

        Args:
            adapter: Broker adapter; its ``supports_pull`` flag is read once here.
            registry: Optional shared handler registry.
            polling: Polling engine settings (pull adapters only).
            hooks: Instrumentation hooks; defaults to the context registry.
            logger: Observer for decode and handler failures.
            handler_timeout: Optional per-handler timeout in seconds. A
                handler that exceeds it counts as failed.
        """
        self._adapter = adapter
        self._registry = registry if registry is not None else HandlerRegistry()
        self._hooks = hooks
        self._logger = logger or _logger
        self._handler_timeout = handler_timeout
        self._poller: PollingEngine | None = None

        if adapter.supports_pull:
            queue = cast("IPullQueue", adapter)
            queue.set_inbound_handler(self.handle_message)
            self._poller = PollingEngine(queue, polling, hooks=hooks, logger=logger)

    @classmethod
    def from_factory(cls, factory: MessageBusFactory, **kwargs: Any) -> MessageBus:
        """Build a bus around the adapter created by *factory*."""
        return cls(factory.create_adapter(), **kwargs)

    # ── Properties ───────────────────────────────────────────────

    @property
    def adapter(self) -> IMessagePublisher:
        return self._adapter

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    @property
    def poller(self) -> PollingEngine | None:
        """The polling engine, or None for push-delivered adapters."""
        return self._poller

    @property
    def hooks(self) -> HookRegistry:
        return self._hooks or get_hook_registry()

    # ── Registration ─────────────────────────────────────────────

    def register_handler(self, handler: MessageHandler) -> HandlerRegistration:
        """Register a handler to be invoked for the message types it declares."""
        return self._registry.register(handler)

    def subscribe(
        self,
        types: Iterable[str],
        callback: Callable[[MessageEnvelope], Awaitable[Any]],
        *,
        name: str | None = None,
    ) -> HandlerRegistration:
        """Register a coroutine function for *types*."""
        return self._registry.subscribe(types, callback, name=name)

    # ── Outbound ─────────────────────────────────────────────────

    async def publish(
        self,
        destination: str,
        message_type: str,
        payload: dict[str, Any] | list[Any],
        correlation_id: str | None = None,
    ) -> MessageEnvelope:
        """Publish an event to *destination* (queue or topic).

        The correlation id falls back to the one bound in the current context,
        then to a fresh one. Nothing is retried here.

        Raises:
            PublishError: if the adapter call fails.
        """
        cid = correlation_id or get_correlation_id() or generate_correlation_id()
        envelope = MessageEnvelope.create(message_type, cid, payload)
        attributes: dict[str, Any] = {
            "message.type": message_type,
            "destination": destination,
            "correlation_id": cid,
        }

        async def _send() -> None:
            try:
                await self._adapter.publish(destination, envelope)
            except AdapterError:
                raise
            except Exception as e:
                raise PublishError(
                    f"Failed to publish {message_type!r} to {destination!r}: {e}",
                    destination=destination,
                ) from e

        await self.hooks.execute_all(f"bus.publish.{message_type}", attributes, _send)
        return envelope

    # ── Inbound ──────────────────────────────────────────────────

    def decode(self, raw: Any) -> MessageEnvelope:
        """Decode a raw broker payload through the adapter.

        Raises:
            DecodeError: if the payload is not a valid envelope.
        """
        try:
            return self._adapter.decode(raw)
        except Exception as e:
            self._logger.warning("Error decoding message %.200r: %s", raw, e)
            if isinstance(e, DecodeError):
                raise
            raise DecodeError(f"Error decoding message: {e}") from e

    async def handle_message(self, raw: Any) -> None:
        """Decode *raw* and run every handler registered for its type.

        A message no handler accepts is dropped silently.

        Raises:
            DecodeError: if *raw* cannot be decoded. Not retried.
            HandlerError: if any handler failed; carries every failure.
        """
        envelope = self.decode(raw)
        handlers = self._registry.matching(envelope.type)
        if not handlers:
            self._logger.debug("No handler for message type %s", envelope.type)
            return

        attributes: dict[str, Any] = {
            "message.type": envelope.type,
            "correlation_id": envelope.correlation_id,
            "handler.count": len(handlers),
        }
        with correlation_scope(envelope.correlation_id):
            await self.hooks.execute_all(
                f"bus.handle.{envelope.type}",
                attributes,
                lambda: self._fan_out(envelope, handlers),
            )

    async def _fan_out(
        self,
        envelope: MessageEnvelope,
        handlers: list[HandlerRegistration],
    ) -> None:
        results = await asyncio.gather(
            *(self._invoke(h, envelope) for h in handlers),
            return_exceptions=True,
        )
        failures: list[HandlerFailure] = []
        for registration, result in zip(handlers, results):
            if isinstance(result, Exception):
                failures.append(HandlerFailure(registration.name, result))
            elif isinstance(result, BaseException):
                raise result
        if failures:
            self._logger.warning(
                "%d of %d handler(s) failed for %s (cid=%s)",
                len(failures),
                len(handlers),
                envelope.type,
                envelope.correlation_id,
            )
            raise HandlerError(envelope.type, failures)

    async def _invoke(
        self,
        registration: HandlerRegistration,
        envelope: MessageEnvelope,
    ) -> None:
        """Invoke a single handler, enforcing the optional timeout."""

        async def _call() -> None:
            result = registration.callback(envelope)
            if not isawaitable(result):
                return
            if self._handler_timeout is not None:
                await asyncio.wait_for(result, self._handler_timeout)
            else:
                await result

        try:
            await self.hooks.execute_all(
                f"bus.handler.{envelope.type}.{registration.name}",
                {"handler.name": registration.name, "message.type": envelope.type},
                _call,
            )
        except Exception:
            self._logger.exception(
                "Error executing handler %s for message %s",
                registration.name,
                envelope.type,
            )
            raise

    # ── Lifecycle ────────────────────────────────────────────────

    async def start(self) -> bool:
        """Start polling (pull adapters). Returns False if nothing was started."""
        if self._poller is None:
            return False
        return await self._poller.start()

    async def stop(self) -> None:
        """Stop polling and wait for the cycle in flight to finish."""
        if self._poller is not None:
            await self._poller.stop()

    async def close(self) -> None:
        """Stop polling, then release adapter-owned resources."""
        await self.stop()
        if self._adapter.supports_pull:
            await cast("IPullQueue", self._adapter).close()

    async def __aenter__(self) -> MessageBus:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
