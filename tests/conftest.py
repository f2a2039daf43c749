"""Pytest configuration and shared fixtures.

Organization:
    - Settings Fixtures: isolated settings caches and policies
    - Bus Fixtures: fresh extension-point buses, with and without contributions
    - Viewer Fixtures: anonymous and privileged viewers
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from graph_service.core.settings import clear_all_caches
from graph_service.features.graphql import cache as schema_cache
from graph_service.features.graphql.config import GraphQLPolicies
from graph_service.features.graphql.context import Viewer
from graph_service.features.graphql.definitions import FieldDefinition, TypeDefinition
from graph_service.features.graphql.hooks import ExtensionPointBus
from graph_service.features.graphql.schema_registry import (
    REGISTER_FIELDS_POINT,
    REGISTER_TYPES_POINT,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from graph_service.features.graphql.type_registry import TypeRegistry


WIDGETS: dict[str, dict[str, Any]] = {
    "1": {"id": "1", "name": "Gadget"},
    "2": {"id": "2", "name": "Sprocket"},
}

WIDGET_TYPE = TypeDefinition.object_type(
    "Widget",
    fields=[
        FieldDefinition("id", "ID"),
        FieldDefinition("name", "String"),
    ],
)


def resolve_widget(_root: Any, _info: Any, id: str) -> dict[str, Any] | None:
    return WIDGETS.get(id)


def register_widget_type(type_registry: TypeRegistry, _context: Any) -> TypeRegistry:
    type_registry.register_type(WIDGET_TYPE)
    return type_registry


def register_widget_query(type_registry: TypeRegistry, _context: Any) -> TypeRegistry:
    type_registry.register_field(
        "RootQuery",
        FieldDefinition("widget", "Widget", args={"id": "ID!"}, resolve=resolve_widget),
    )
    return type_registry


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep environment-derived settings and process-wide caches out of tests."""
    for key in (
        "GRAPHQL_DEBUG",
        "GRAPHQL_DEBUG_MODE_ENABLED",
        "GRAPHQL_ENVIRONMENT",
        "GRAPHQL_STATIC_SCHEMA_PATH",
        "GRAPHQL_PUBLIC_INTROSPECTION_ENABLED",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(schema_cache, "_BUS", None)
    monkeypatch.setattr(schema_cache, "_CACHE", None)
    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture
def policies() -> GraphQLPolicies:
    """Default policy snapshot."""
    return GraphQLPolicies()


@pytest.fixture
def tracing_policies() -> GraphQLPolicies:
    """Policies tracing and logging every viewer."""
    return GraphQLPolicies(
        tracing_enabled=True,
        tracing_role="any",
        query_logs_enabled=True,
        query_log_role="any",
    )


# ============================================================================
# Bus Fixtures
# ============================================================================


@pytest.fixture
def bus() -> ExtensionPointBus:
    """Empty extension-point bus."""
    return ExtensionPointBus()


@pytest.fixture
def widget_bus(bus: ExtensionPointBus) -> ExtensionPointBus:
    """Bus contributing ``Widget`` and ``RootQuery.widget(id: ID!)``."""
    bus.register(REGISTER_TYPES_POINT, register_widget_type, accepted_args=2)
    bus.register(REGISTER_FIELDS_POINT, register_widget_query, accepted_args=2)
    return bus


# ============================================================================
# Viewer Fixtures
# ============================================================================


@pytest.fixture
def anonymous() -> Viewer:
    return Viewer.anonymous()


@pytest.fixture
def admin() -> Viewer:
    """Authenticated administrator holding the ``admin`` capability."""
    return Viewer(id="1", roles=frozenset({"administrator"}), capabilities=frozenset({"admin"}))


@pytest.fixture
def subscriber() -> Viewer:
    """Authenticated viewer without special capabilities."""
    return Viewer(id="2", roles=frozenset({"subscriber"}))
