"""Request-scoped DataLoaders.

DataLoaders batch and cache lookups within a single request. Each request
context owns its own ``RequestLoaders`` container, so batching boundaries and
caches are never shared between concurrent operations. Every batch is
recorded in the request's query log and traced as an OpenTelemetry span.

Usage in a resolver:
    async def resolve_author(post, info):
        loader = info.context.get_loader("users", load_users)
        return await loader.load(post["author_id"])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from strawberry.dataloader import DataLoader

from graph_service.features.graphql.instrumentation.tracing import get_graphql_tracer

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    BatchLoadFn = Callable[[list[Any]], Awaitable[Sequence[Any]]]
    QueryRecorder = Callable[..., Any]

logger = logging.getLogger(__name__)

__all__ = ["RequestLoaders"]


class RequestLoaders:
    """Container of named DataLoaders for one request.

    Loaders are created on first use and reused for the rest of the request.
    """

    def __init__(self, record_query: QueryRecorder | None = None) -> None:
        """Initialize an empty container.

        Args:
            record_query: Callback receiving ``(statement, params=..., source=...)``
                for every batch; usually ``RequestContext.record_query``
        """
        self._record_query = record_query
        self._loaders: dict[str, DataLoader[Any, Any]] = {}

    def get(self, name: str, load_fn: BatchLoadFn) -> DataLoader[Any, Any]:
        """Return the loader called ``name``, creating it around ``load_fn``."""
        loader = self._loaders.get(name)
        if loader is None:
            loader = DataLoader(load_fn=self._batch_fn(name, load_fn))
            self._loaders[name] = loader
        return loader

    def _batch_fn(self, name: str, load_fn: BatchLoadFn) -> BatchLoadFn:
        async def batch_load(keys: list[Any]) -> Sequence[Any]:
            with get_graphql_tracer().start_as_current_span(
                f"graphql.dataloader.{name}",
                kind=trace.SpanKind.INTERNAL,
            ) as span:
                span.set_attribute("graphql.dataloader.name", name)
                span.set_attribute("graphql.dataloader.batch_size", len(keys))
                if self._record_query is not None:
                    self._record_query(
                        f"load {name}",
                        params={"keys": list(keys)},
                        source="dataloader",
                    )
                logger.debug(
                    "DataLoader batch",
                    extra={"loader": name, "batch_size": len(keys)},
                )
                return await load_fn(keys)

        return batch_load

    def __contains__(self, name: object) -> bool:
        return name in self._loaders

    def __len__(self) -> int:
        return len(self._loaders)
