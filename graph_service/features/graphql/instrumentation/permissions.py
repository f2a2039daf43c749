"""Field-level authorization.

Fields declare the capability tags a viewer needs (``FieldDefinition
.capabilities``). The permission middleware runs first in every resolver chain
and refuses the field before anything else happens; the underlying resolver
is never called for a denied viewer. A denial only fails that one field, so
sibling fields still resolve.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from graphql import GraphQLError

from graph_service.features.graphql.instrumentation.chain import context_of

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from graphql import GraphQLResolveInfo

    from graph_service.features.graphql.instrumentation.chain import FieldMeta

logger = logging.getLogger(__name__)

__all__ = ["AUTHORIZATION_ERROR", "AuthorizationError", "permission_middleware"]

AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"


class AuthorizationError(GraphQLError):
    """The viewer lacks a capability required by the field.

    Example:
        raise AuthorizationError("RootQuery.secret", missing=["admin"])
    """

    def __init__(self, coordinate: str, missing: Iterable[str] = ()) -> None:
        missing = sorted(missing)
        super().__init__(
            f"You don't have permission to access '{coordinate}'",
            extensions={
                "code": AUTHORIZATION_ERROR,
                "required_capabilities": missing,
            },
        )
        self.coordinate = coordinate
        self.missing = missing


def permission_middleware(
    next_resolver: Callable[..., Any],
    meta: FieldMeta,
    source: Any,
    info: GraphQLResolveInfo,
    **args: Any,
) -> Any:
    """Short-circuit the field when the viewer lacks a required capability.

    Raises:
        AuthorizationError: If any required capability is missing
    """
    if meta.capabilities:
        viewer = getattr(context_of(info), "viewer", None)
        missing = [
            capability
            for capability in meta.capabilities
            if viewer is None or not viewer.has_capability(capability)
        ]
        if missing:
            logger.warning(
                "Field access denied",
                extra={
                    "field": meta.coordinate,
                    "viewer_id": getattr(viewer, "id", None),
                    "missing_capabilities": sorted(missing),
                },
            )
            raise AuthorizationError(meta.coordinate, missing)

    return next_resolver(source, info, **args)
