"""PollingEngine — fetch / process / acknowledge loop for pull-queue adapters."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any

from .config import PollingConfig
from .exceptions import DecodeError, HandlerError
from .instrumentation import get_hook_registry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .instrumentation import HookRegistry
    from .ports import IPullQueue

_logger = logging.getLogger("toto_pubsub.polling")


class PollerState(str, Enum):
    """Lifecycle of a polling engine."""

    IDLE = "idle"
    POLLING = "polling"
    DRAINING = "draining"
    STOPPED = "stopped"


class PollingEngine:
    """Drives one pull queue: fetch a batch, process it, acknowledge successes.

    Messages of a batch are processed one after another, in fetch order. A
    message is acknowledged strictly after its handlers all succeeded; failed
    messages are left for the broker to redeliver. A failed fetch never ends
    the loop: it waits ``backoff_seconds`` and fetches again.

    ``stop()`` is cooperative: the cycle in flight completes before the loop
    observes the new state and exits; a backoff wait in progress ends early.
    The state flag is lock-guarded so a stop requested from another thread is
    seen by the loop.

    Usage::

        engine = PollingEngine(queue, PollingConfig(backoff_seconds=5.0))
        await engine.start()
        ...
        await engine.stop()
        await queue.close()
    """

    def __init__(
        self,
        queue: IPullQueue,
        config: PollingConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        hooks: HookRegistry | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Configure the engine.

        Args:
            queue: Adapter to poll; must already have an inbound handler.
            config: Backoff settings; defaults to ``PollingConfig()``.
            sleep: Coroutine used for the backoff wait (overridable for tests).
                The default wait ends early when a stop is requested.
            hooks: Instrumentation hooks; defaults to the context registry.
            logger: Observer for loop events; defaults to ``toto_pubsub.polling``.
        """
        self._queue = queue
        self._config = config or PollingConfig()
        self._sleep = sleep or self._wait_for_stop
        self._hooks = hooks
        self._logger = logger or _logger
        self._lock = threading.Lock()
        self._state = PollerState.IDLE
        self._task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None

    # ── State ────────────────────────────────────────────────────

    @property
    def state(self) -> PollerState:
        with self._lock:
            return self._state

    @property
    def is_polling(self) -> bool:
        return self.state is PollerState.POLLING

    @property
    def config(self) -> PollingConfig:
        return self._config

    def _transition(self, allowed: tuple[PollerState, ...], to: PollerState) -> bool:
        with self._lock:
            if self._state not in allowed:
                return False
            self._state = to
            return True

    # ── Lifecycle ────────────────────────────────────────────────

    async def start(self) -> bool:
        """Initialize the queue and start the loop.

        Returns False (and does nothing) when a loop is already active.
        """
        name = self._queue.destination_name
        if not self._transition(
            (PollerState.IDLE, PollerState.STOPPED), PollerState.POLLING
        ):
            self._logger.info("Polling of %s is %s", name, self.state.value)
            return False

        loop = self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        try:
            await self._queue.initialize()
        except Exception:
            self._transition((PollerState.POLLING,), PollerState.IDLE)
            raise

        if not self.is_polling:
            # Stopped while initializing.
            self._transition((PollerState.DRAINING,), PollerState.STOPPED)
            return False

        self._task = loop.create_task(self._run(), name=f"toto-poller:{name}")
        self._task.add_done_callback(self._on_loop_done)
        return True

    def request_stop(self) -> bool:
        """Ask the loop to exit after the cycle in flight. Thread-safe.

        Returns False when the engine was not polling.
        """
        stopping = self._transition((PollerState.POLLING,), PollerState.DRAINING)
        if stopping:
            self._logger.info("Stopping polling of %s", self._queue.destination_name)
            self._wake()
        return stopping

    def _wake(self) -> None:
        loop, event = self._loop, self._stop_event
        if loop is None or event is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(event.set)

    async def stop(self) -> None:
        """Request a stop and wait for the loop to exit. No-op when not polling."""
        self.request_stop()
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        if not task.done():
            await task

    # ── Loop ─────────────────────────────────────────────────────

    async def _run(self) -> None:
        name = self._queue.destination_name
        self._logger.info("Started polling queue %s", name)
        try:
            while self.is_polling:
                await self.poll_once()
        finally:
            with self._lock:
                self._state = PollerState.STOPPED
            self._logger.info("Polling of %s stopped", name)

    async def poll_once(self) -> int:
        """Run one fetch/process/acknowledge cycle.

        Returns the number of messages fetched (0 after a failed fetch).
        """
        name = self._queue.destination_name
        hooks = self._hooks or get_hook_registry()
        try:
            batch = await hooks.execute_all(
                "poller.fetch",
                {"queue": name},
                self._queue.receive_batch,
            )
        except Exception as e:  # noqa: BLE001
            self._logger.warning(
                "Error polling %s: %s (retrying in %.1fs)",
                name,
                e,
                self._config.backoff_seconds,
            )
            if self.is_polling:
                await self._sleep(self._config.backoff_seconds)
            return 0

        if batch:
            self._logger.debug("Received %d message(s) from %s", len(batch), name)
        for raw in batch:
            await self._process(raw)
        return len(batch)

    async def _process(self, raw: Any) -> bool:
        """Deliver one message; acknowledge it only if delivery succeeded."""
        name = self._queue.destination_name
        try:
            await self._queue.deliver(raw)
        except DecodeError:
            self._logger.debug("Undecodable message on %s left unacknowledged", name)
            return False
        except HandlerError as e:
            self._logger.debug(
                "Message %s on %s left unacknowledged: %d handler failure(s)",
                e.message_type,
                name,
                len(e.failures),
            )
            return False
        except Exception:
            self._logger.exception("Unexpected error processing message on %s", name)
            return False

        try:
            await self._queue.acknowledge(raw)
        except Exception as e:  # noqa: BLE001
            self._logger.warning(
                "Failed to acknowledge message on %s, it may be redelivered: %s",
                name,
                e,
            )
            return False
        self._logger.debug("Message acknowledged on %s", name)
        return True

    async def _wait_for_stop(self, delay: float) -> None:
        """Backoff wait that returns as soon as a stop is requested."""
        event = self._stop_event
        if event is None:
            await asyncio.sleep(delay)
            return
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(event.wait(), delay)

    def _on_loop_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error(
                "Polling loop for %s crashed: %s",
                self._queue.destination_name,
                exc,
                exc_info=exc,
            )
