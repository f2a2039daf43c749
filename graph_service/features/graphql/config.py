"""Resolved GraphQL policies.

Stored settings (core/settings/graphql.py) carry several flags that override
each other. ``resolve_policies()`` collapses them into one immutable snapshot
that the schema build and request handling read as plain values.

Debug precedence:
    1. ``GRAPHQL_DEBUG`` (explicit override constant) when set
    2. ``GRAPHQL_DEBUG_MODE_ENABLED`` (stored setting)
    3. ``False``
    The result is then passed through the ``graphql_debug_enabled`` filter.

Public introspection:
    Always on in debug mode; otherwise ``GRAPHQL_PUBLIC_INTROSPECTION_ENABLED``
    when set; otherwise on for local/development environments only.

Usage:
    policies = resolve_policies(get_graphql_settings(), bus)
    if policies.traces(viewer):
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from graph_service.core.settings import GraphQLSettings
    from graph_service.features.graphql.context import Viewer
    from graph_service.features.graphql.hooks import ExtensionPointBus

logger = logging.getLogger(__name__)

__all__ = ["ANY_ROLE", "DEBUG_FILTER_POINT", "GraphQLPolicies", "resolve_policies"]

ANY_ROLE = "any"
DEBUG_FILTER_POINT = "graphql_debug_enabled"


@dataclass(frozen=True)
class GraphQLPolicies:
    """Read-only policy values for one schema build / request.

    Attributes:
        debug: Report internal error detail in responses
        restrict_to_logged_in: Reject operations from anonymous viewers
        public_introspection: Allow introspection for anonymous viewers
        batch_enabled: Accept batched operations
        batch_limit: Maximum operations per batch
        depth_limit: Maximum query depth, or None when unlimited
        tracing_enabled: Collect resolver traces
        tracing_role: Role whose requests are traced (``any`` for all)
        query_logs_enabled: Collect data-access logs
        query_log_role: Role whose requests are logged (``any`` for all)
        static_schema_path: Pre-built SDL document, if configured
    """

    debug: bool = False
    restrict_to_logged_in: bool = False
    public_introspection: bool = False
    batch_enabled: bool = True
    batch_limit: int = 10
    depth_limit: int | None = None
    tracing_enabled: bool = False
    tracing_role: str = "administrator"
    query_logs_enabled: bool = False
    query_log_role: str = "administrator"
    static_schema_path: Path | None = None

    def traces(self, viewer: Viewer) -> bool:
        """Check whether requests from ``viewer`` are traced."""
        return self.tracing_enabled and _role_matches(viewer, self.tracing_role)

    def logs_queries(self, viewer: Viewer) -> bool:
        """Check whether data access for ``viewer`` is logged."""
        return self.query_logs_enabled and _role_matches(viewer, self.query_log_role)

    def allows_introspection(self, viewer: Viewer) -> bool:
        return self.public_introspection or viewer.is_authenticated


def _role_matches(viewer: Viewer, role: str) -> bool:
    return role == ANY_ROLE or viewer.has_role(role)


def resolve_policies(
    settings: GraphQLSettings,
    bus: ExtensionPointBus | None = None,
) -> GraphQLPolicies:
    """Collapse stored settings into a policy snapshot.

    Args:
        settings: Stored GraphQL settings
        bus: Optional bus whose ``graphql_debug_enabled`` filter may adjust
            the debug flag

    Returns:
        Immutable policy snapshot
    """
    if settings.debug is not None:
        debug = settings.debug
    else:
        debug = settings.debug_mode_enabled
    if bus is not None:
        debug = bool(bus.fire(DEBUG_FILTER_POINT, debug))

    if debug:
        public_introspection = True
    elif settings.public_introspection_enabled is not None:
        public_introspection = settings.public_introspection_enabled
    else:
        public_introspection = settings.is_development

    policies = GraphQLPolicies(
        debug=debug,
        restrict_to_logged_in=settings.restrict_endpoint_to_logged_in_users,
        public_introspection=public_introspection,
        batch_enabled=settings.batch_queries_enabled,
        batch_limit=settings.batch_limit,
        depth_limit=settings.query_depth_max if settings.query_depth_enabled else None,
        tracing_enabled=settings.tracing_enabled,
        tracing_role=settings.tracing_user_role,
        query_logs_enabled=settings.query_logs_enabled,
        query_log_role=settings.query_log_user_role,
        static_schema_path=settings.static_schema_path,
    )
    logger.debug(
        "Resolved GraphQL policies",
        extra={
            "debug": policies.debug,
            "public_introspection": policies.public_introspection,
            "environment": settings.environment,
        },
    )
    return policies
