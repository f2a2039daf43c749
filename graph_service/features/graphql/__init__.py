"""GraphQL schema assembly and resolver instrumentation.

This module provides:
- An extension-point bus contributors register callbacks on
- A type registry assembled in phases and frozen into a graphql-core schema
- Resolver instrumentation (permissions, tracing, query logs)
- A process-wide schema cache with explicit invalidation
- The execution boundary used by the transport
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ExtensionPointBus",
    "SchemaCache",
    "execute_operation",
    "get_extension_bus",
    "get_schema",
    "get_type_registry",
    "invalidate_schema",
]


def __getattr__(name: str) -> Any:
    if name == "ExtensionPointBus":
        from graph_service.features.graphql.hooks import ExtensionPointBus

        return ExtensionPointBus
    if name == "execute_operation":
        from graph_service.features.graphql.executor import execute_operation

        return execute_operation
    if name in ("SchemaCache", "get_extension_bus", "get_schema", "get_type_registry", "invalidate_schema"):
        from graph_service.features.graphql import cache

        return getattr(cache, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
