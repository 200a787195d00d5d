"""HandlerRegistry — append-only set of message consumers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from .envelope import MessageEnvelope
    from .ports import MessageHandler


@dataclass(frozen=True)
class HandlerRegistration:
    """A ``(message types, async callback)`` pair."""

    types: frozenset[str]
    callback: Callable[[MessageEnvelope], Awaitable[Any]]
    name: str

    def accepts(self, message_type: str) -> bool:
        return message_type in self.types


class HandlerRegistry:
    """Holds registered handlers in registration order.

    Registration is append-only and does not de-duplicate: registering the
    same handler twice makes it run twice per message. Readers need no lock.
    """

    def __init__(self) -> None:
        self._registrations: list[HandlerRegistration] = []

    def register(self, handler: MessageHandler) -> HandlerRegistration:
        """Register an object implementing :class:`MessageHandler`."""
        return self.subscribe(
            handler.handled_message_types(),
            handler.on_message,
            name=type(handler).__name__,
        )

    def subscribe(
        self,
        types: Iterable[str],
        callback: Callable[[MessageEnvelope], Awaitable[Any]],
        *,
        name: str | None = None,
    ) -> HandlerRegistration:
        """Register a coroutine function for *types*."""
        if isinstance(types, str):
            types = (types,)
        registration = HandlerRegistration(
            types=frozenset(types),
            callback=callback,
            name=name or getattr(callback, "__qualname__", repr(callback)),
        )
        self._registrations.append(registration)
        return registration

    def matching(self, message_type: str) -> list[HandlerRegistration]:
        """Return registrations accepting *message_type*, in registration order."""
        return [r for r in self._registrations if r.accepts(message_type)]

    def __len__(self) -> int:
        return len(self._registrations)
