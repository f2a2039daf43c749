"""Operation validation rules added on top of the standard GraphQL rules.

- Query depth limit (``GRAPHQL_QUERY_DEPTH_ENABLED`` / ``GRAPHQL_QUERY_DEPTH_MAX``)
- Introspection for anonymous viewers, unless public introspection is on

Usage:
    rules = [*specified_rules, *extra_validation_rules(context.policies, context.viewer)]
    errors = validate(schema, document, rules)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from graphql import (
    FieldNode,
    FragmentSpreadNode,
    GraphQLError,
    InlineFragmentNode,
    ValidationRule,
    get_named_type,
    is_introspection_type,
)

from graph_service.features.graphql.error_handler import ErrorCategory

if TYPE_CHECKING:
    from graphql import (
        OperationDefinitionNode,
        SelectionSetNode,
        ValidationContext,
    )

    from graph_service.features.graphql.config import GraphQLPolicies
    from graph_service.features.graphql.context import Viewer

logger = logging.getLogger(__name__)

__all__ = [
    "IntrospectionDisabledRule",
    "depth_limit_rule",
    "extra_validation_rules",
    "selection_depth",
]


# ============================================================================
# Query depth
# ============================================================================


def selection_depth(
    selection_set: SelectionSetNode | None,
    context: ValidationContext,
    visited: frozenset[str] = frozenset(),
) -> int:
    """Depth of the deepest field below ``selection_set``.

    Fragments are followed (each at most once per path); introspection
    meta fields do not count.
    """
    if selection_set is None:
        return 0

    deepest = 0
    for selection in selection_set.selections:
        if isinstance(selection, FieldNode):
            if selection.name.value.startswith("__"):
                continue
            depth = 1 + selection_depth(selection.selection_set, context, visited)
        elif isinstance(selection, InlineFragmentNode):
            depth = selection_depth(selection.selection_set, context, visited)
        elif isinstance(selection, FragmentSpreadNode):
            name = selection.name.value
            fragment = context.get_fragment(name)
            if name in visited or fragment is None:
                continue
            depth = selection_depth(fragment.selection_set, context, visited | {name})
        else:
            continue
        deepest = max(deepest, depth)
    return deepest


def depth_limit_rule(max_depth: int) -> type[ValidationRule]:
    """Build a validation rule rejecting operations nested deeper than ``max_depth``.

    Example:
        errors = validate(schema, parse("{ a { b { c } } }"), [depth_limit_rule(2)])
        # [GraphQLError('Query depth 3 exceeds limit of 2')]
    """

    class DepthLimitRule(ValidationRule):
        def enter_operation_definition(
            self, node: OperationDefinitionNode, *_args: Any
        ) -> None:
            depth = selection_depth(node.selection_set, self.context)
            if depth > max_depth:
                logger.warning(
                    "GraphQL query depth exceeded",
                    extra={
                        "operation_name": node.name.value if node.name else None,
                        "max_depth": depth,
                        "limit": max_depth,
                    },
                )
                self.report_error(
                    GraphQLError(
                        f"Query depth {depth} exceeds limit of {max_depth}",
                        node,
                        extensions={
                            "code": ErrorCategory.DEPTH_LIMIT,
                            "max_depth": depth,
                            "limit": max_depth,
                        },
                    )
                )

    return DepthLimitRule


# ============================================================================
# Introspection
# ============================================================================


class IntrospectionDisabledRule(ValidationRule):
    """Reject fields returning introspection types (``__schema``, ``__type``)."""

    def enter_field(self, node: FieldNode, *_args: Any) -> None:
        type_ = get_named_type(self.context.get_type())
        if type_ and is_introspection_type(type_):
            self.report_error(
                GraphQLError(
                    "GraphQL introspection is not allowed for anonymous viewers, "
                    f"but the query contained the field '{node.name.value}'.",
                    node,
                    extensions={"code": ErrorCategory.INTROSPECTION_DISABLED},
                )
            )


def extra_validation_rules(
    policies: GraphQLPolicies, viewer: Viewer
) -> list[type[ValidationRule]]:
    """Rules to run after the standard ones for this viewer."""
    rules: list[type[ValidationRule]] = []
    if policies.depth_limit is not None:
        rules.append(depth_limit_rule(policies.depth_limit))
    if not policies.allows_introspection(viewer):
        rules.append(IntrospectionDisabledRule)
    return rules
