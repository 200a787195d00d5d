"""Instrumentation hooks — wrap bus operations for tracing and metrics."""

from __future__ import annotations

import fnmatch
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


@runtime_checkable
class BusHook(Protocol):
    """Protocol for hooks wrapping a bus operation (tracing, metrics, etc.)."""

    async def __call__(
        self,
        operation: str,
        attributes: dict[str, Any],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run *next_handler* with instrumentation around it."""
        ...


class HookRegistration:
    """A registered hook with its operation filter and priority."""

    def __init__(
        self,
        hook: BusHook,
        *,
        priority: int = 0,
        operations: list[str] | None = None,
        predicate: Callable[[str, dict[str, Any]], bool] | None = None,
    ) -> None:
        self.hook = hook
        self.priority = priority
        self.operations = operations or []
        self.predicate = predicate

    def matches(self, operation: str, attributes: dict[str, Any]) -> bool:
        if self.predicate is not None and not self.predicate(operation, attributes):
            return False
        if not self.operations:
            return True
        return any(fnmatch.fnmatch(operation, p) for p in self.operations)


class HookRegistry:
    """Ordered set of hooks; lower priority runs outermost."""

    def __init__(self) -> None:
        self._registrations: list[HookRegistration] = []

    def register(
        self,
        hook: BusHook,
        *,
        priority: int = 0,
        operations: list[str] | None = None,
        predicate: Callable[[str, dict[str, Any]], bool] | None = None,
    ) -> HookRegistration:
        """Register a hook, optionally limited to fnmatch operation patterns."""
        registration = HookRegistration(
            hook, priority=priority, operations=operations, predicate=predicate
        )
        self._registrations.append(registration)
        self._registrations.sort(key=lambda r: r.priority)
        return registration

    async def execute_all(
        self,
        operation: str,
        attributes: dict[str, Any],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run *next_handler* through every matching hook."""
        matching = [r for r in self._registrations if r.matches(operation, attributes)]
        if not matching:
            return await next_handler()

        async def pipeline(index: int = 0) -> Any:
            if index >= len(matching):
                return await next_handler()
            return await matching[index].hook(
                operation,
                attributes,
                lambda: pipeline(index + 1),
            )

        return await pipeline()

    def clear(self) -> None:
        """Remove all registrations."""
        self._registrations.clear()


_hook_registry_var: ContextVar[HookRegistry | None] = ContextVar(
    "toto_hook_registry", default=None
)


def get_hook_registry() -> HookRegistry:
    """Get the hook registry for the current context, creating it on first use."""
    registry = _hook_registry_var.get()
    if registry is None:
        registry = HookRegistry()
        _hook_registry_var.set(registry)
    return registry


def set_hook_registry(registry: HookRegistry) -> None:
    """Set a custom hook registry in the current context."""
    _hook_registry_var.set(registry)
