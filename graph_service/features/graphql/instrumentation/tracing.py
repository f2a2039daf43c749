"""Resolver tracing.

When tracing is enabled for the viewer's role, the request context carries a
``TraceBuffer``. The trace middleware times every field resolution with a
monotonic clock, stores the timing keyed by the field's response path, and
opens an OpenTelemetry span per field. The buffer is rendered into the
response extensions in the Apollo tracing shape:

    {
        "version": 1,
        "startTime": "...", "endTime": "...", "duration": 1234,
        "execution": {"resolvers": [
            {"path": ["widget", "name"], "parentType": "Widget",
             "fieldName": "name", "returnType": "String",
             "startOffset": 100, "duration": 20},
        ]},
    }

Durations and offsets are nanoseconds.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from graph_service.features.graphql.instrumentation.chain import context_of, run_then

if TYPE_CHECKING:
    from collections.abc import Callable

    from graphql import GraphQLResolveInfo

    from graph_service.features.graphql.instrumentation.chain import FieldMeta

logger = logging.getLogger(__name__)

__all__ = [
    "TRACING_VERSION",
    "ResolverTiming",
    "TraceBuffer",
    "get_graphql_tracer",
    "trace_middleware",
]

TRACING_VERSION = 1


def get_graphql_tracer() -> trace.Tracer:
    """Get OpenTelemetry tracer for GraphQL resolvers."""
    return trace.get_tracer("graph_service.graphql", "1.0.0")


@dataclass(frozen=True)
class ResolverTiming:
    """Timing of one field resolution."""

    path: tuple[str | int, ...]
    parent_type: str
    field_name: str
    return_type: str
    start_offset: int
    duration: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "path": list(self.path),
            "parentType": self.parent_type,
            "fieldName": self.field_name,
            "returnType": self.return_type,
            "startOffset": self.start_offset,
            "duration": self.duration,
        }


@dataclass
class TraceBuffer:
    """Request-scoped collection of resolver timings.

    Created when the request starts; ``finish()`` stamps the end time.
    """

    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    start_ns: int = field(default_factory=time.perf_counter_ns)
    end_time: datetime | None = None
    end_ns: int | None = None
    resolvers: list[ResolverTiming] = field(default_factory=list)

    def clock(self) -> int:
        """Nanoseconds since the request started."""
        return time.perf_counter_ns() - self.start_ns

    def record(self, timing: ResolverTiming) -> None:
        self.resolvers.append(timing)

    def finish(self) -> None:
        if self.end_ns is None:
            self.end_ns = time.perf_counter_ns()
            self.end_time = datetime.now(UTC)

    def to_extension(self) -> dict[str, Any]:
        """Render the Apollo tracing structure."""
        self.finish()
        return {
            "version": TRACING_VERSION,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "duration": (self.end_ns or self.start_ns) - self.start_ns,
            "execution": {"resolvers": [r.as_dict() for r in self.resolvers]},
        }


def trace_middleware(
    next_resolver: Callable[..., Any],
    meta: FieldMeta,
    source: Any,
    info: GraphQLResolveInfo,
    **args: Any,
) -> Any:
    """Time the field resolution when the request carries a trace buffer.

    Exceptions raised by the resolver are recorded on the span and then
    propagate unchanged.
    """
    buffer: TraceBuffer | None = getattr(context_of(info), "trace", None)
    if buffer is None:
        return next_resolver(source, info, **args)

    path = tuple(info.path.as_list())
    span = get_graphql_tracer().start_span(
        f"graphql.resolve.{meta.parent_type}.{meta.field_name}",
        kind=trace.SpanKind.INTERNAL,
    )
    span.set_attribute("graphql.field.name", meta.field_name)
    span.set_attribute("graphql.field.parent_type", meta.parent_type)
    span.set_attribute("graphql.field.path", ".".join(str(p) for p in path))
    start_offset = buffer.clock()

    def finish(error: BaseException | None) -> None:
        buffer.record(
            ResolverTiming(
                path=path,
                parent_type=meta.parent_type,
                field_name=meta.field_name,
                return_type=str(info.return_type),
                start_offset=start_offset,
                duration=buffer.clock() - start_offset,
            )
        )
        if error is not None:
            span.record_exception(error)
            span.set_status(Status(StatusCode.ERROR, str(error)))
        else:
            span.set_status(Status(StatusCode.OK))
        span.end()

    return run_then(lambda: next_resolver(source, info, **args), finish)
