"""Per-request data-access log.

Data sources record what they fetch through ``RequestContext.record_query()``;
per-request loaders do so for every batch. When query logging is enabled for
the viewer's role, the log middleware remembers how many records existed
before its field resolved and claims every unclaimed record produced after
that point for the field's path.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from graph_service.features.graphql.instrumentation.chain import context_of, run_then

if TYPE_CHECKING:
    from collections.abc import Callable

    from graphql import GraphQLResolveInfo

    from graph_service.features.graphql.instrumentation.chain import FieldMeta

logger = logging.getLogger(__name__)

__all__ = ["QueryLog", "QueryRecord", "query_log_middleware"]


@dataclass
class QueryRecord:
    """One data-access event.

    Attributes:
        statement: What was executed (query text, loader name, URL, ...)
        params: Parameters the statement ran with
        source: Component that produced the record
        duration: Time spent, in nanoseconds, when known
        path: Response path of the field that claimed the record
    """

    statement: str
    params: dict[str, Any] = field(default_factory=dict)
    source: str | None = None
    duration: int | None = None
    recorded_at: int = field(default_factory=time.perf_counter_ns)
    path: tuple[str | int, ...] | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "statement": self.statement,
            "params": self.params,
            "source": self.source,
            "duration": self.duration,
            "path": list(self.path) if self.path is not None else None,
        }


@dataclass
class QueryLog:
    """Request-scoped buffer of data-access records."""

    records: list[QueryRecord] = field(default_factory=list)

    def record(
        self,
        statement: str,
        *,
        params: dict[str, Any] | None = None,
        source: str | None = None,
        duration: int | None = None,
    ) -> QueryRecord:
        entry = QueryRecord(statement, params=params or {}, source=source, duration=duration)
        self.records.append(entry)
        return entry

    def mark(self) -> int:
        """Position to claim from once a field finishes resolving."""
        return len(self.records)

    def claim(self, mark: int, path: tuple[str | int, ...]) -> list[QueryRecord]:
        """Attribute the unclaimed records produced since ``mark`` to ``path``."""
        claimed = []
        for entry in self.records[mark:]:
            if entry.path is None:
                entry.path = path
                claimed.append(entry)
        return claimed

    def to_extension(self) -> dict[str, Any]:
        return {
            "queryCount": len(self.records),
            "queries": [entry.as_dict() for entry in self.records],
        }


def query_log_middleware(
    next_resolver: Callable[..., Any],
    meta: FieldMeta,
    source: Any,
    info: GraphQLResolveInfo,
    **args: Any,
) -> Any:
    """Attach records produced while the field resolved to its path."""
    log: QueryLog | None = getattr(context_of(info), "query_log", None)
    if log is None:
        return next_resolver(source, info, **args)

    mark = log.mark()
    path = tuple(info.path.as_list())

    def claim(_error: BaseException | None) -> None:
        claimed = log.claim(mark, path)
        if claimed:
            logger.debug(
                "Field produced data access",
                extra={"field": meta.coordinate, "queries": len(claimed)},
            )

    return run_then(lambda: next_resolver(source, info, **args), claim)
