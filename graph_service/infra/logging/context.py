"""Context management for structured logging.

Provides automatic context injection into log records using contextvars,
so request IDs, viewer IDs and operation names are included in every log
message emitted while an operation executes.

Each asyncio task gets its own copy of the context, so concurrent
operations never see each other's values.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Set logging context for the current async task/thread.

    Args:
        **kwargs: Key-value pairs to add to logging context.
            Common examples: request_id, viewer_id, operation_name

    Example:
        ```python
        set_log_context(request_id="abc-123", viewer_id="42")
        logger.info("Executing operation")  # Includes request_id and viewer_id
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for the current async task/thread."""
    _log_context.set({})


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Add values to the logging context for the duration of a block.

    The previous context is restored on exit.

    Example:
        with log_context(request_id="abc-123"):
            logger.info("Executing operation")
    """
    token = _log_context.set({**_log_context.get(), **kwargs})
    try:
        yield
    finally:
        _log_context.reset(token)


class ContextInjectingFilter(logging.Filter):
    """Logging filter that injects the contextvars log context into LogRecords.

    Attached to handlers so records propagated from any child logger are
    enriched before formatting.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Inject context into log record.

        Args:
            record: The log record to enhance with context.

        Returns:
            True (always allow the record to be logged).
        """
        for key, value in _log_context.get().items():
            # Don't overwrite existing attributes
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
