"""Resolver instrumentation.

Every field resolver of a frozen schema is wrapped once with a fixed chain:
permission check, query logging, tracing, then the original resolver.
Trace and log data land in request-scoped buffers on the request context.
"""

from __future__ import annotations

from graph_service.features.graphql.instrumentation.chain import (
    FieldMeta,
    Middleware,
    compose,
    run_then,
)
from graph_service.features.graphql.instrumentation.permissions import (
    AUTHORIZATION_ERROR,
    AuthorizationError,
    permission_middleware,
)
from graph_service.features.graphql.instrumentation.query_log import (
    QueryLog,
    QueryRecord,
    query_log_middleware,
)
from graph_service.features.graphql.instrumentation.schema import (
    DEFAULT_MIDDLEWARE,
    SUBSCRIBE_MIDDLEWARE,
    instrument_schema,
)
from graph_service.features.graphql.instrumentation.tracing import (
    ResolverTiming,
    TraceBuffer,
    get_graphql_tracer,
    trace_middleware,
)

__all__ = [
    "AUTHORIZATION_ERROR",
    "DEFAULT_MIDDLEWARE",
    "AuthorizationError",
    "FieldMeta",
    "Middleware",
    "QueryLog",
    "QueryRecord",
    "ResolverTiming",
    "SUBSCRIBE_MIDDLEWARE",
    "TraceBuffer",
    "compose",
    "get_graphql_tracer",
    "instrument_schema",
    "permission_middleware",
    "query_log_middleware",
    "run_then",
    "trace_middleware",
]
