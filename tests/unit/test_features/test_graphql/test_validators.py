"""Tests for the extra validation rules."""

from __future__ import annotations

import pytest
from graphql import build_schema, parse, specified_rules, validate

from graph_service.features.graphql.config import GraphQLPolicies
from graph_service.features.graphql.context import Viewer
from graph_service.features.graphql.error_handler import ErrorCategory
from graph_service.features.graphql.validators import (
    IntrospectionDisabledRule,
    depth_limit_rule,
    extra_validation_rules,
)

SCHEMA = build_schema(
    """
    type Category {
      name: String
      parent: Category
    }

    type Query {
      category: Category
    }
    """
)


def errors_for(query: str, *rules):
    return validate(SCHEMA, parse(query), [*specified_rules, *rules])


@pytest.mark.unit
class TestDepthLimit:
    """Nested selections beyond the limit are rejected."""

    def test_within_limit(self) -> None:
        assert errors_for("{ category { parent { name } } }", depth_limit_rule(3)) == []

    def test_exceeds_limit(self) -> None:
        (error,) = errors_for("{ category { parent { parent { name } } } }", depth_limit_rule(3))

        assert error.message == "Query depth 4 exceeds limit of 3"
        assert error.extensions["code"] == ErrorCategory.DEPTH_LIMIT

    def test_fragments_count_towards_depth(self) -> None:
        query = """
        query { category { ...Deep } }
        fragment Deep on Category { parent { parent { name } } }
        """

        assert len(errors_for(query, depth_limit_rule(3))) == 1

    def test_typename_does_not_count(self) -> None:
        assert errors_for("{ category { __typename name } }", depth_limit_rule(2)) == []


@pytest.mark.unit
class TestIntrospection:
    """Introspection gating for anonymous viewers."""

    def test_schema_field_rejected(self) -> None:
        (error,) = errors_for('{ __type(name: "Query") { name } }', IntrospectionDisabledRule)

        assert error.extensions["code"] == ErrorCategory.INTROSPECTION_DISABLED
        assert "'__type'" in error.message

    def test_typename_allowed(self) -> None:
        assert errors_for("{ category { __typename } }", IntrospectionDisabledRule) == []


@pytest.mark.unit
def test_extra_rules_follow_policies(admin: Viewer, anonymous: Viewer) -> None:
    assert extra_validation_rules(GraphQLPolicies(public_introspection=True), anonymous) == []

    closed = GraphQLPolicies(public_introspection=False, depth_limit=5)

    assert IntrospectionDisabledRule in extra_validation_rules(closed, anonymous)
    assert IntrospectionDisabledRule not in extra_validation_rules(closed, admin)
    assert len(extra_validation_rules(closed, admin)) == 1
