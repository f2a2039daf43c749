"""Operation execution boundary.

The HTTP transport is not part of this service's core. It hands an operation
and a request context to these functions and receives back a plain result
mapping ready to serialize:

    {"data": {...}, "errors": [...], "extensions": {"tracing": ..., "queryLog": ...}}

``errors`` and ``extensions`` are omitted when empty. Errors are shaped by
``error_handler.format_errors`` according to the request's debug policy.

Usage:
    context = create_request_context(viewer, request_meta, cache.policies)
    result = await execute_operation(cache.get_schema(), query, context=context)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from inspect import isawaitable
from typing import TYPE_CHECKING, Any

from graphql import (
    GraphQLError,
    GraphQLSchema,
    execute,
    execute_sync,
    parse,
    specified_rules,
    validate,
)

from graph_service.features.graphql.context import RequestContext, create_request_context
from graph_service.features.graphql.error_handler import ErrorCategory, format_errors
from graph_service.features.graphql.validators import extra_validation_rules
from graph_service.infra.logging import log_context

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from graphql import DocumentNode, ExecutionResult

    from graph_service.features.graphql.config import GraphQLPolicies
    from graph_service.features.graphql.schema_registry import GraphSchema

logger = logging.getLogger(__name__)

__all__ = [
    "GraphQLRequest",
    "execute_batch",
    "execute_operation",
    "execute_operation_sync",
]

AUTHENTICATION_REQUIRED_MESSAGE = "GraphQL requests must be authenticated"


@dataclass(frozen=True)
class GraphQLRequest:
    """One operation as received from the transport."""

    query: str
    variables: dict[str, Any] = field(default_factory=dict)
    operation_name: str | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> GraphQLRequest:
        """Build from a decoded JSON payload (``query``, ``variables``, ``operationName``)."""
        return cls(
            query=payload.get("query") or "",
            variables=dict(payload.get("variables") or {}),
            operation_name=payload.get("operationName"),
        )


# ============================================================================
# Single operations
# ============================================================================


async def execute_operation(
    schema: GraphSchema | GraphQLSchema,
    query: str,
    *,
    variables: Mapping[str, Any] | None = None,
    operation_name: str | None = None,
    context: RequestContext | None = None,
    root_value: Any = None,
) -> dict[str, Any]:
    """Execute one operation, awaiting async resolvers.

    Args:
        schema: Executable schema
        query: Operation document
        variables: Variable values
        operation_name: Operation to run when the document holds several
        context: Fresh request context; an anonymous one is created if omitted
        root_value: Root value passed to top-level resolvers

    Returns:
        Result mapping with ``data`` and, when present, ``errors`` and
        ``extensions``
    """
    context = context or create_request_context()
    with log_context(**_log_fields(context, operation_name)):
        graphql_schema = _unwrap(schema)
        document, errors = _prepare(graphql_schema, query, context)
        if document is None:
            return _respond(context, None, errors)

        result = execute(
            graphql_schema,
            document,
            root_value=root_value,
            context_value=context,
            variable_values=variables,
            operation_name=operation_name,
        )
        if isawaitable(result):
            result = await result
        return _respond_result(context, result)


def execute_operation_sync(
    schema: GraphSchema | GraphQLSchema,
    query: str,
    *,
    variables: Mapping[str, Any] | None = None,
    operation_name: str | None = None,
    context: RequestContext | None = None,
    root_value: Any = None,
) -> dict[str, Any]:
    """Execute one operation whose resolvers are all synchronous.

    Raises:
        RuntimeError: If a resolver returns an awaitable
    """
    context = context or create_request_context()
    with log_context(**_log_fields(context, operation_name)):
        graphql_schema = _unwrap(schema)
        document, errors = _prepare(graphql_schema, query, context)
        if document is None:
            return _respond(context, None, errors)

        result = execute_sync(
            graphql_schema,
            document,
            root_value=root_value,
            context_value=context,
            variable_values=variables,
            operation_name=operation_name,
        )
        return _respond_result(context, result)


# ============================================================================
# Batches
# ============================================================================


async def execute_batch(
    schema: GraphSchema | GraphQLSchema,
    operations: Sequence[GraphQLRequest | Mapping[str, Any]],
    context_factory: Callable[[], RequestContext],
    policies: GraphQLPolicies,
) -> list[dict[str, Any]]:
    """Execute a batch of operations, each with its own request context.

    A rejected batch (batching disabled, or more operations than the batch
    limit) yields a single error result and runs nothing.

    Args:
        schema: Executable schema
        operations: Operations in request order
        context_factory: Creates a fresh context per operation
        policies: Batch policies

    Returns:
        One result per operation, in request order
    """
    requests = [
        op if isinstance(op, GraphQLRequest) else GraphQLRequest.from_mapping(op)
        for op in operations
    ]

    rejection = _check_batch(len(requests), policies)
    if rejection is not None:
        return [_respond(create_request_context(policies=policies), None, [rejection])]

    async def run(request: GraphQLRequest) -> dict[str, Any]:
        return await execute_operation(
            schema,
            request.query,
            variables=request.variables,
            operation_name=request.operation_name,
            context=context_factory(),
        )

    logger.debug("Executing GraphQL batch", extra={"operations": len(requests)})
    return list(await asyncio.gather(*(run(request) for request in requests)))


def _check_batch(size: int, policies: GraphQLPolicies) -> GraphQLError | None:
    if size > 1 and not policies.batch_enabled:
        logger.info("Rejected batch: batching disabled", extra={"operations": size})
        return GraphQLError(
            "Batch queries are not enabled",
            extensions={"code": ErrorCategory.BATCHING_DISABLED},
        )
    if size > policies.batch_limit:
        logger.info(
            "Rejected batch: too many operations",
            extra={"operations": size, "limit": policies.batch_limit},
        )
        return GraphQLError(
            f"Batch contains {size} operations, the limit is {policies.batch_limit}",
            extensions={
                "code": ErrorCategory.BATCH_LIMIT,
                "operations": size,
                "limit": policies.batch_limit,
            },
        )
    return None


# ============================================================================
# Helpers
# ============================================================================


def _unwrap(schema: GraphSchema | GraphQLSchema) -> GraphQLSchema:
    if isinstance(schema, GraphQLSchema):
        return schema
    return schema.graphql_schema


def _log_fields(context: RequestContext, operation_name: str | None) -> dict[str, Any]:
    return {
        "request_id": context.request_id,
        "viewer_id": context.viewer.id,
        "operation_name": operation_name or "anonymous",
    }


def _prepare(
    schema: GraphQLSchema, query: str, context: RequestContext
) -> tuple[DocumentNode | None, list[GraphQLError]]:
    if context.policies.restrict_to_logged_in and not context.is_authenticated:
        logger.info("Rejected anonymous GraphQL request")
        return None, [
            GraphQLError(
                AUTHENTICATION_REQUIRED_MESSAGE,
                extensions={"code": ErrorCategory.AUTHENTICATION},
            )
        ]

    try:
        document = parse(query)
    except GraphQLError as exc:
        return None, [exc]

    rules = [*specified_rules, *extra_validation_rules(context.policies, context.viewer)]
    errors = validate(schema, document, rules)
    if errors:
        return None, list(errors)
    return document, []


def _respond_result(context: RequestContext, result: ExecutionResult) -> dict[str, Any]:
    return _respond(context, result.data, result.errors or [])


def _respond(
    context: RequestContext,
    data: dict[str, Any] | None,
    errors: list[GraphQLError],
) -> dict[str, Any]:
    response: dict[str, Any] = {"data": data}
    if errors:
        response["errors"] = format_errors(errors, debug=context.debug, context=context)
    extensions = context.extensions()
    if extensions:
        response["extensions"] = extensions
    return response
