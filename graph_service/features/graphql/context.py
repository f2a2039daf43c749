"""GraphQL context for request-scoped state.

The context is created fresh for each operation and provides:
- The viewer (identity, roles and capabilities)
- Raw request metadata from the transport
- A per-request cache map
- DataLoaders (for batched lookups)
- Trace and query-log buffers, when enabled for the viewer's role

A context is never shared between concurrent operations.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from graph_service.features.graphql.config import GraphQLPolicies
from graph_service.features.graphql.dataloaders import RequestLoaders
from graph_service.features.graphql.instrumentation.query_log import QueryLog, QueryRecord
from graph_service.features.graphql.instrumentation.tracing import TraceBuffer

if TYPE_CHECKING:
    from collections.abc import Mapping

    from strawberry.dataloader import DataLoader

    from graph_service.features.graphql.dataloaders import BatchLoadFn

__all__ = ["RequestContext", "Viewer", "create_request_context"]


@dataclass(frozen=True)
class Viewer:
    """The identity an operation runs as.

    Attributes:
        id: Viewer identifier, None for anonymous viewers
        roles: Role names (e.g. ``administrator``)
        capabilities: Capability tags checked by field permissions
    """

    id: str | None = None
    roles: frozenset[str] = frozenset()
    capabilities: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "roles", frozenset(self.roles))
        object.__setattr__(self, "capabilities", frozenset(self.capabilities))

    @classmethod
    def anonymous(cls) -> Viewer:
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.id is not None

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities


@dataclass
class RequestContext:
    """Request context for GraphQL operations.

    Example usage in resolver:
        def resolve_widget(root, info, id):
            ctx = info.context
            if id in ctx.cache:
                return ctx.cache[id]
            ctx.record_query("widgets.get", params={"id": id})
            ...
    """

    viewer: Viewer = field(default_factory=Viewer.anonymous)
    request: Mapping[str, Any] = field(default_factory=dict)
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    policies: GraphQLPolicies = field(default_factory=GraphQLPolicies)
    trace: TraceBuffer | None = None
    query_log: QueryLog | None = None
    cache: dict[Any, Any] = field(default_factory=dict)
    loaders: RequestLoaders = field(init=False)

    def __post_init__(self) -> None:
        self.loaders = RequestLoaders(self.record_query)

    @property
    def is_authenticated(self) -> bool:
        """Check if the request is authenticated."""
        return self.viewer.is_authenticated

    @property
    def debug(self) -> bool:
        return self.policies.debug

    def get_loader(self, name: str, load_fn: BatchLoadFn) -> DataLoader[Any, Any]:
        """Request-scoped DataLoader called ``name`` (see ``RequestLoaders.get``)."""
        return self.loaders.get(name, load_fn)

    def record_query(
        self,
        statement: str,
        *,
        params: dict[str, Any] | None = None,
        source: str | None = None,
        duration: int | None = None,
    ) -> QueryRecord | None:
        """Record a data-access event; a no-op when query logging is off."""
        if self.query_log is None:
            return None
        return self.query_log.record(
            statement, params=params, source=source, duration=duration
        )

    def extensions(self) -> dict[str, Any]:
        """Trace and query-log data for the response extensions."""
        extensions: dict[str, Any] = {}
        if self.trace is not None:
            extensions["tracing"] = self.trace.to_extension()
        if self.query_log is not None:
            extensions["queryLog"] = self.query_log.to_extension()
        return extensions


def create_request_context(
    viewer: Viewer | None = None,
    request: Mapping[str, Any] | None = None,
    policies: GraphQLPolicies | None = None,
    request_id: str | None = None,
) -> RequestContext:
    """Build a fresh context for one operation.

    Trace and query-log buffers are only attached when the policies enable
    them for the viewer's role.
    """
    viewer = viewer or Viewer.anonymous()
    policies = policies or GraphQLPolicies()
    context = RequestContext(
        viewer=viewer,
        request=dict(request or {}),
        policies=policies,
        trace=TraceBuffer() if policies.traces(viewer) else None,
        query_log=QueryLog() if policies.logs_queries(viewer) else None,
    )
    if request_id:
        context.request_id = request_id
    return context

