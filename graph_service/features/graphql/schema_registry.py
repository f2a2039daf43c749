"""Phased schema build.

The schema is assembled from extension contributions in a fixed order of
extension-point firings:

1. ``graphql_init`` - pre-init; contributors register entities and raw
   configuration on the ``BuildContext``
2. ``graphql_register_types`` - contributors register type definitions
3. ``graphql_register_fields`` - contributors register fields, including on
   types contributed by other extensions
4. ``graphql_type_registry`` - contributors inspect or adjust the assembled,
   not yet frozen, registry (rename or suppress fields and types)
5. freeze - validation, compilation into an executable graphql-core schema
   and resolver instrumentation

Only one build runs at a time. A build either returns a complete schema or
raises a ``SchemaBuildError``; nothing partial escapes it.

Usage:
    bus = ExtensionPointBus()

    @bus.on(REGISTER_TYPES_POINT)
    def register_widget(type_registry, build_context):
        type_registry.register_type(WIDGET)
        return type_registry

    schema = SchemaRegistry(bus, policies).build()
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from graphql import GraphQLError, GraphQLSchema, build_schema, print_schema, validate_schema

from graph_service.core.exceptions import (
    ConcurrentBuildError,
    SchemaBuildError,
    SchemaConfigurationError,
)
from graph_service.features.graphql.config import GraphQLPolicies
from graph_service.features.graphql.definitions import FieldDefinition, TypeDefinition
from graph_service.features.graphql.entities import EntityRegistry, register_default_entities
from graph_service.features.graphql.instrumentation import instrument_schema
from graph_service.features.graphql.type_registry import TypeRegistry

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from graph_service.features.graphql.hooks import ExtensionPointBus

logger = logging.getLogger(__name__)

__all__ = [
    "BUILD_PHASES",
    "INIT_POINT",
    "REGISTER_FIELDS_POINT",
    "REGISTER_TYPES_POINT",
    "TYPE_REGISTRY_POINT",
    "BuildContext",
    "GraphSchema",
    "RootTypes",
    "SchemaRegistry",
]

INIT_POINT = "graphql_init"
REGISTER_TYPES_POINT = "graphql_register_types"
REGISTER_FIELDS_POINT = "graphql_register_fields"
TYPE_REGISTRY_POINT = "graphql_type_registry"

BUILD_PHASES = (INIT_POINT, REGISTER_TYPES_POINT, REGISTER_FIELDS_POINT, TYPE_REGISTRY_POINT)


@dataclass(frozen=True)
class RootTypes:
    """Names of the root operation types."""

    query: str = "RootQuery"
    mutation: str = "RootMutation"
    subscription: str = "RootSubscription"


@dataclass
class BuildContext:
    """State shared with contributors for the duration of one build.

    Attributes:
        policies: Resolved policies the build runs under
        entities: Content entities exposed to the graph
        bus: Bus the build fires, for filters contributors apply themselves
        config: Raw configuration contributed during pre-init
        root_types: Root operation type names
    """

    policies: GraphQLPolicies
    entities: EntityRegistry
    bus: ExtensionPointBus
    config: dict[str, Any] = field(default_factory=dict)
    root_types: RootTypes = field(default_factory=RootTypes)

    def allowed_entities(self, kind: str) -> list[str]:
        """Names of the opted-in entities of ``kind`` after filtering.

        Raises:
            SchemaConfigurationError: If an opted-in entity lacks a public name
        """
        return self.entities.allowed(kind, self.bus)


@dataclass(frozen=True)
class GraphSchema:
    """An executable schema and the registry it was frozen from.

    ``type_registry`` is None for schemas loaded from a static SDL document.
    """

    graphql_schema: GraphQLSchema
    type_registry: TypeRegistry | None
    root_types: RootTypes = field(default_factory=RootTypes)
    static: bool = False

    def print_sdl(self) -> str:
        return print_schema(self.graphql_schema)


def _health(_root: Any, _info: Any) -> str:
    return "ok"


class SchemaRegistry:
    """Drives the build phases over an extension-point bus.

    Example:
        registry = SchemaRegistry(bus, policies)
        type_registry, context = registry.build_type_registry()
        schema = registry.freeze(type_registry, context)
    """

    def __init__(
        self,
        bus: ExtensionPointBus,
        policies: GraphQLPolicies | None = None,
        root_types: RootTypes | None = None,
    ) -> None:
        self.bus = bus
        self.policies = policies or GraphQLPolicies()
        self.root_types = root_types or RootTypes()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self) -> GraphSchema:
        """Run every phase and return the instrumented schema.

        Raises:
            ConcurrentBuildError: If another build is running
            SchemaBuildError: If any phase fails
        """
        with self._exclusive():
            type_registry, context = self._assemble()
            return self._freeze(type_registry, context)

    def build_type_registry(self) -> tuple[TypeRegistry, BuildContext]:
        """Run phases 1-4 and return the assembled, unfrozen registry.

        Raises:
            ConcurrentBuildError: If another build is running
            SchemaBuildError: If any phase fails
        """
        with self._exclusive():
            return self._assemble()

    def freeze(self, type_registry: TypeRegistry, context: BuildContext) -> GraphSchema:
        """Run phase 5 on an assembled registry.

        Raises:
            ConcurrentBuildError: If another build is running
            SchemaBuildError: If validation or compilation fails
        """
        with self._exclusive():
            return self._freeze(type_registry, context)

    def build_from_sdl(self, sdl: str, source: str = "static schema") -> GraphSchema:
        """Build an instrumented schema from a pre-built SDL document.

        Dynamic assembly is skipped entirely; fields use the default
        property resolver.

        Raises:
            SchemaConfigurationError: If the document is invalid
        """
        with self._exclusive():
            try:
                graphql_schema = build_schema(sdl)
            except (GraphQLError, TypeError) as exc:
                raise SchemaConfigurationError(
                    f"Invalid SDL in {source}: {exc}", source=source
                ) from exc
            self._check_schema(graphql_schema)
            instrument_schema(graphql_schema)
            logger.info(
                "Loaded static GraphQL schema",
                extra={"source": source, "types": len(graphql_schema.type_map)},
            )
            return GraphSchema(graphql_schema, None, self.root_types, static=True)

    def new_build_context(self) -> BuildContext:
        entities = register_default_entities(EntityRegistry())
        return BuildContext(
            policies=self.policies,
            entities=entities,
            bus=self.bus,
            root_types=self.root_types,
        )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _assemble(self) -> tuple[TypeRegistry, BuildContext]:
        context = self.new_build_context()
        logger.debug("Starting schema build", extra={"phases": list(BUILD_PHASES)})

        config = self._run_phase(
            INIT_POINT, lambda: self.bus.fire(INIT_POINT, context.config, context)
        )
        if not isinstance(config, dict):
            raise SchemaConfigurationError(
                f"Extension point '{INIT_POINT}' must return the configuration mapping",
                phase=INIT_POINT,
            )
        context.config = config

        type_registry = TypeRegistry()
        for root in (self.root_types.query, self.root_types.mutation, self.root_types.subscription):
            type_registry.register_type(TypeDefinition.object_type(root))

        for point in (REGISTER_TYPES_POINT, REGISTER_FIELDS_POINT, TYPE_REGISTRY_POINT):
            type_registry = self._fire_registry_phase(point, type_registry, context)

        logger.info(
            "Assembled type registry",
            extra={"types": len(type_registry), "entities": len(context.entities)},
        )
        return type_registry, context

    def _fire_registry_phase(
        self, point: str, type_registry: TypeRegistry, context: BuildContext
    ) -> TypeRegistry:
        result = self._run_phase(point, lambda: self.bus.fire(point, type_registry, context))
        if not isinstance(result, TypeRegistry):
            raise SchemaConfigurationError(
                f"Extension point '{point}' must return the type registry, "
                f"got {type(result).__name__}",
                phase=point,
            )
        return result

    def _run_phase(self, point: str, fire: Callable[[], Any]) -> Any:
        logger.debug("Running build phase", extra={"phase": point})
        try:
            return fire()
        except SchemaBuildError as exc:
            logger.error(
                "Schema build failed",
                extra={"phase": point, "error": exc.detail, "error_type": exc.type},
            )
            raise
        except Exception as exc:
            logger.exception("Extension callback failed during schema build", extra={"phase": point})
            raise SchemaBuildError(
                f"Extension point '{point}' failed: {exc}",
                extra={"phase": point, "exception_type": type(exc).__name__},
            ) from exc

    def _freeze(self, type_registry: TypeRegistry, context: BuildContext) -> GraphSchema:
        roots = self.root_types
        for optional_root in (roots.mutation, roots.subscription):
            if optional_root in type_registry and not type_registry.get_fields(optional_root):
                type_registry.remove_type(optional_root)

        if roots.query not in type_registry:
            raise SchemaConfigurationError(
                f"Root query type '{roots.query}' was removed from the registry",
                type_name=roots.query,
            )
        if not type_registry.get_fields(roots.query):
            logger.warning("No query fields registered, adding health placeholder")
            type_registry.register_field(
                roots.query,
                FieldDefinition("health", "String", resolve=_health, description="Health check"),
            )

        type_registry.validate(context.entities)

        try:
            types = type_registry.build_graphql_types()
            type_registry.freeze()
            graphql_schema = GraphQLSchema(
                query=types[roots.query],  # type: ignore[arg-type]
                mutation=types.get(roots.mutation),  # type: ignore[arg-type]
                subscription=types.get(roots.subscription),  # type: ignore[arg-type]
                types=list(types.values()),
            )
        except SchemaBuildError:
            raise
        except (GraphQLError, TypeError, ValueError) as exc:
            raise SchemaConfigurationError(f"Schema compilation failed: {exc}") from exc

        self._check_schema(graphql_schema)
        instrument_schema(graphql_schema)

        logger.info(
            "Schema built",
            extra={
                "types": len(type_registry),
                "mutation": graphql_schema.mutation_type is not None,
                "subscription": graphql_schema.subscription_type is not None,
            },
        )
        return GraphSchema(graphql_schema, type_registry, roots)

    @staticmethod
    def _check_schema(graphql_schema: GraphQLSchema) -> None:
        errors = validate_schema(graphql_schema)
        if errors:
            problems = [error.message for error in errors]
            raise SchemaConfigurationError(
                "Schema validation failed: " + "; ".join(problems),
                problems=problems,
            )

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            logger.error("Rejected re-entrant schema build")
            raise ConcurrentBuildError()
        try:
            yield
        finally:
            self._lock.release()
