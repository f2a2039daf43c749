"""Wrap every resolver of an executable schema in the middleware chain."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from graphql import GraphQLObjectType, default_field_resolver

from graph_service.features.graphql.instrumentation.chain import FieldMeta, compose
from graph_service.features.graphql.instrumentation.permissions import permission_middleware
from graph_service.features.graphql.instrumentation.query_log import query_log_middleware
from graph_service.features.graphql.instrumentation.tracing import trace_middleware

if TYPE_CHECKING:
    from collections.abc import Sequence

    from graphql import GraphQLSchema

    from graph_service.features.graphql.instrumentation.chain import Middleware

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_MIDDLEWARE",
    "INSTRUMENTED_EXTENSION",
    "SUBSCRIBE_MIDDLEWARE",
    "instrument_schema",
]

# Outermost first: permission check, then query logging around tracing around
# the resolver, so trace end happens before records are claimed.
DEFAULT_MIDDLEWARE: tuple[Middleware, ...] = (
    permission_middleware,
    query_log_middleware,
    trace_middleware,
)

# Event-stream sources only get the permission check; per-event resolution
# runs through the full chain above.
SUBSCRIBE_MIDDLEWARE: tuple[Middleware, ...] = (permission_middleware,)

INSTRUMENTED_EXTENSION = "instrumented"


def instrument_schema(
    schema: GraphQLSchema,
    middleware: Sequence[Middleware] = DEFAULT_MIDDLEWARE,
    subscribe_middleware: Sequence[Middleware] = SUBSCRIBE_MIDDLEWARE,
) -> GraphQLSchema:
    """Substitute a wrapped resolver for every field of every object type.

    Fields without a resolver are wrapped around graphql-core's default
    property resolver. Subscription event-stream sources are wrapped with
    ``subscribe_middleware``. Introspection types are left alone. Wrapping is
    applied at most once per field.

    Args:
        schema: Validated executable schema
        middleware: Chain to apply, outermost first
        subscribe_middleware: Chain applied to ``subscribe`` functions

    Returns:
        The same schema, instrumented in place
    """
    wrapped = 0
    for type_name, named_type in schema.type_map.items():
        if type_name.startswith("__") or not isinstance(named_type, GraphQLObjectType):
            continue
        for field_name, field_def in named_type.fields.items():
            extensions = dict(field_def.extensions or {})
            if extensions.get(INSTRUMENTED_EXTENSION):
                continue
            meta = FieldMeta(
                parent_type=type_name,
                field_name=field_name,
                capabilities=frozenset(extensions.get("capabilities") or ()),
            )
            field_def.resolve = compose(
                field_def.resolve or default_field_resolver, meta, middleware
            )
            if field_def.subscribe is not None:
                field_def.subscribe = compose(field_def.subscribe, meta, subscribe_middleware)
            extensions[INSTRUMENTED_EXTENSION] = True
            field_def.extensions = extensions
            wrapped += 1

    logger.debug("Instrumented schema resolvers", extra={"fields": wrapped})
    return schema
