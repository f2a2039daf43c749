"""Extension-point bus.

Independent contributors attach callbacks to named extension points. Firing a
point runs its callbacks in ascending priority; callbacks with equal priority
run in registration order, so repeated builds with the same registrations are
reproducible.

Two firing styles are supported:

- ``fire(point, value, *args)`` threads an accumulator through the chain. Every
  callback receives the current value and returns its replacement; a callback
  that does not want to change it must return it unchanged.
- ``notify(point, *args)`` calls every callback for its side effects and
  ignores return values.

Usage:
    bus = ExtensionPointBus()

    @bus.on("graphql_register_types", priority=5)
    def register_widget(type_registry, build_context):
        type_registry.register_type(WIDGET)
        return type_registry

    type_registry = bus.fire("graphql_register_types", type_registry, build_context)
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

__all__ = ["DEFAULT_PRIORITY", "ExtensionPointBus", "RegisteredCallback"]

DEFAULT_PRIORITY = 10


@dataclass(frozen=True)
class RegisteredCallback:
    """One callback attached to an extension point.

    Attributes:
        priority: Lower runs first
        sequence: Global registration counter, breaks priority ties
        callback: The contributed callable
        accepted_args: Number of positional arguments the callback takes,
            or None to receive every argument
    """

    priority: int
    sequence: int
    callback: Callable[..., Any]
    accepted_args: int | None

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.priority, self.sequence)


class ExtensionPointBus:
    """Ordered, priority-sorted callback registry.

    Registration is purely additive and expected at startup. Firing never
    changes the registry. An exception raised by a callback aborts the rest of
    the chain and propagates to the caller unchanged.
    """

    def __init__(self) -> None:
        """Initialize an empty bus."""
        self._points: dict[str, list[RegisteredCallback]] = {}
        self._sequence = itertools.count()
        self._lock = threading.Lock()

    def register(
        self,
        point: str,
        callback: Callable[..., Any],
        priority: int = DEFAULT_PRIORITY,
        accepted_args: int | None = 1,
    ) -> RegisteredCallback:
        """Attach a callback to an extension point.

        Args:
            point: Extension point name
            callback: Callable invoked when the point fires
            priority: Lower values run first (default 10)
            accepted_args: How many positional arguments the callback accepts,
                or None for all of them. For ``fire`` the accumulator counts
                as the first one and is always passed.

        Returns:
            The registration record

        Raises:
            ValueError: If accepted_args is negative
        """
        if accepted_args is not None and accepted_args < 0:
            raise ValueError("accepted_args must be >= 0")

        with self._lock:
            entry = RegisteredCallback(
                priority=priority,
                sequence=next(self._sequence),
                callback=callback,
                accepted_args=accepted_args,
            )
            entries = self._points.setdefault(point, [])
            entries.append(entry)
            # list.sort is stable; sequence keeps ties in registration order
            entries.sort(key=lambda e: e.sort_key)

        logger.debug(
            "Registered extension point callback",
            extra={
                "extension_point": point,
                "priority": priority,
                "callback": getattr(callback, "__qualname__", repr(callback)),
            },
        )
        return entry

    def on(
        self,
        point: str,
        priority: int = DEFAULT_PRIORITY,
        accepted_args: int | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of register().

        Unlike register(), every argument is forwarded by default.

        Example:
            @bus.on("graphql_register_fields", priority=20)
            def add_price(type_registry, build_context):
                ...
                return type_registry
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.register(point, func, priority=priority, accepted_args=accepted_args)
            return func

        return decorator

    def fire(self, point: str, value: Any, *args: Any) -> Any:
        """Thread an accumulator through every callback on ``point``.

        Args:
            point: Extension point name
            value: Initial accumulator value
            *args: Extra arguments offered to callbacks

        Returns:
            The accumulator returned by the last callback (``value`` itself
            when nothing is registered)
        """
        entries = self.callbacks(point)
        if not entries:
            return value

        logger.debug(
            "Firing extension point",
            extra={"extension_point": point, "callbacks": len(entries)},
        )
        for entry in entries:
            if entry.accepted_args is None:
                value = entry.callback(value, *args)
            else:
                value = entry.callback(value, *args[: max(entry.accepted_args - 1, 0)])
        return value

    def notify(self, point: str, *args: Any) -> None:
        """Call every callback on ``point`` for its side effects.

        Args:
            point: Extension point name
            *args: Arguments offered to callbacks
        """
        for entry in self.callbacks(point):
            passed = args if entry.accepted_args is None else args[: entry.accepted_args]
            entry.callback(*passed)

    def callbacks(self, point: str) -> list[RegisteredCallback]:
        """Snapshot of the callbacks on ``point`` in invocation order."""
        with self._lock:
            return list(self._points.get(point, ()))

    def has(self, point: str) -> bool:
        """Check whether any callback is attached to ``point``."""
        with self._lock:
            return bool(self._points.get(point))

    @property
    def points(self) -> list[str]:
        """Names of all extension points with at least one callback."""
        with self._lock:
            return sorted(self._points)
