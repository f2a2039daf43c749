"""Resolver middleware composition.

A middleware is a plain function that receives the next resolver in the
chain, the static metadata of the field it wraps, and the usual resolver
arguments:

    def middleware(next_resolver, meta, source, info, **args):
        ...
        return next_resolver(source, info, **args)

``compose()`` binds a list of middleware around a resolver once, at freeze
time. The first middleware in the list runs outermost.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from dataclasses import dataclass
from inspect import isawaitable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Sequence

    from graphql import GraphQLResolveInfo

__all__ = ["FieldMeta", "Middleware", "compose", "context_of", "run_then"]

Middleware = Callable[..., Any]


@dataclass(frozen=True)
class FieldMeta:
    """Static facts about the field a resolver chain is bound to.

    Attributes:
        parent_type: Name of the owning object type
        field_name: Field name
        capabilities: Capability tags a viewer needs to resolve the field
    """

    parent_type: str
    field_name: str
    capabilities: frozenset[str] = frozenset()

    @property
    def coordinate(self) -> str:
        """Schema coordinate, e.g. ``RootQuery.widget``."""
        return f"{self.parent_type}.{self.field_name}"


def compose(
    resolver: Callable[..., Any],
    meta: FieldMeta,
    middleware: Sequence[Middleware],
) -> Callable[..., Any]:
    """Wrap ``resolver`` in ``middleware``, first entry outermost.

    Example:
        resolve = compose(original, meta, [permission_middleware, trace_middleware])
        # permission_middleware(trace_middleware(original))
    """
    wrapped = resolver
    for step in reversed(middleware):
        wrapped = functools.partial(step, wrapped, meta)
    return wrapped


def run_then(
    call: Callable[[], Any],
    on_done: Callable[[BaseException | None], None],
) -> Any:
    """Run ``call`` and invoke ``on_done`` once its result is available.

    Synchronous results finish immediately. Awaitable results are returned
    as an awaitable that finishes when awaited, so a sync resolver stays sync
    and an async resolver stays async. Exceptions reach ``on_done`` and are
    then re-raised unchanged.
    """
    try:
        result = call()
    except Exception as exc:
        on_done(exc)
        raise

    if isawaitable(result):
        return _await_then(result, on_done)

    on_done(None)
    return result


async def _await_then(
    awaitable: Awaitable[Any],
    on_done: Callable[[BaseException | None], None],
) -> Any:
    try:
        result = await awaitable
    except Exception as exc:
        on_done(exc)
        raise
    on_done(None)
    return result


def context_of(info: GraphQLResolveInfo) -> Any:
    """Request context attached to ``info``, or None."""
    return getattr(info, "context", None)
