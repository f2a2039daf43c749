"""Process-wide schema cache.

The type registry and the executable schema are built lazily on first access
and reused until ``invalidate()`` discards both. There is no partial
invalidation: cross-type references make rebuilding one part unsafe.

A build failure of any kind leaves the cache empty, so the next access retries
from scratch. A finished schema passes through the ``graphql_schema`` filter
before it is cached. Producing a registry or a schema then fires the
``graphql_get_type_registry`` / ``graphql_get_schema`` notifications with the
finished artifact.

Usage:
    schema = get_schema()              # built on first call
    assert get_schema() is schema      # cached
    invalidate_schema()                # e.g. after a configuration change
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from graph_service.core.exceptions import SchemaConfigurationError
from graph_service.core.settings import get_graphql_settings
from graph_service.features.graphql.config import GraphQLPolicies, resolve_policies
from graph_service.features.graphql.hooks import ExtensionPointBus
from graph_service.features.graphql.schema_registry import GraphSchema, SchemaRegistry

if TYPE_CHECKING:
    from graph_service.core.settings import GraphQLSettings
    from graph_service.features.graphql.schema_registry import BuildContext
    from graph_service.features.graphql.type_registry import TypeRegistry

logger = logging.getLogger(__name__)

__all__ = [
    "GET_SCHEMA_POINT",
    "GET_TYPE_REGISTRY_POINT",
    "SCHEMA_FILTER_POINT",
    "SchemaCache",
    "get_extension_bus",
    "get_schema",
    "get_schema_cache",
    "get_static_schema",
    "get_type_registry",
    "invalidate_schema",
]

GET_TYPE_REGISTRY_POINT = "graphql_get_type_registry"
GET_SCHEMA_POINT = "graphql_get_schema"
SCHEMA_FILTER_POINT = "graphql_schema"


class SchemaCache:
    """Lazily built, explicitly invalidated schema and type registry.

    All access goes through one re-entrant lock, so concurrent callers wait
    for a running build and then share its result. A build re-entered from
    the same thread (an extension asking for the schema while it is being
    built) is rejected by the schema registry with ``ConcurrentBuildError``.

    Example:
        cache = SchemaCache(bus, settings=GraphQLSettings(tracing_enabled=True))
        schema = cache.get_schema()
    """

    def __init__(
        self,
        bus: ExtensionPointBus,
        settings: GraphQLSettings | None = None,
    ) -> None:
        self.bus = bus
        self._settings = settings
        self._lock = threading.RLock()
        self._policies: GraphQLPolicies | None = None
        self._schema_registry: SchemaRegistry | None = None
        self._type_registry: TypeRegistry | None = None
        self._build_context: BuildContext | None = None
        self._schema: GraphSchema | None = None

    @property
    def settings(self) -> GraphQLSettings:
        return self._settings or get_graphql_settings()

    @property
    def policies(self) -> GraphQLPolicies:
        """Policies resolved from the current settings, until invalidated."""
        with self._lock:
            if self._policies is None:
                self._policies = resolve_policies(self.settings, self.bus)
            return self._policies

    @property
    def schema_registry(self) -> SchemaRegistry:
        with self._lock:
            if self._schema_registry is None:
                self._schema_registry = SchemaRegistry(self.bus, self.policies)
            return self._schema_registry

    def get_type_registry(self) -> TypeRegistry:
        """Return the assembled type registry, building it on first call.

        The returned instance is the one ``get_schema()`` freezes: once the
        schema is built, further registrations on it raise
        ``RegistryFrozenError``.

        Raises:
            SchemaBuildError: If the build fails; nothing is cached
        """
        with self._lock:
            if self._type_registry is None:
                try:
                    type_registry, build_context = self.schema_registry.build_type_registry()
                except Exception:
                    self._discard()
                    raise
                self._type_registry = type_registry
                self._build_context = build_context
                self.bus.notify(GET_TYPE_REGISTRY_POINT, type_registry)
            return self._type_registry

    def get_schema(self) -> GraphSchema:
        """Return the executable schema, building it on first call.

        A configured, non-empty static SDL document takes precedence over
        dynamic assembly. The ``graphql_schema`` filter receives the built
        schema and the build context (None for static schemas) and may return
        a replacement.

        The schema is cached before ``graphql_get_schema`` listeners run. A
        listener error propagates to this caller, and later calls return the
        cached schema without notifying again.

        Raises:
            SchemaBuildError: If the build fails; nothing is cached
            SchemaConfigurationError: If the filter returns something other
                than a ``GraphSchema``
        """
        with self._lock:
            if self._schema is not None:
                return self._schema

            try:
                static_sdl = self.get_static_schema()
                if static_sdl is not None:
                    schema = self.schema_registry.build_from_sdl(
                        static_sdl, source=str(self.policies.static_schema_path)
                    )
                else:
                    type_registry = self.get_type_registry()
                    schema = self.schema_registry.freeze(
                        type_registry, self._build_context  # type: ignore[arg-type]
                    )
                schema = self._filter_schema(schema)
            except Exception:
                self._discard()
                raise

            self._schema = schema
            self.bus.notify(GET_SCHEMA_POINT, schema)
            return schema

    def _filter_schema(self, schema: GraphSchema) -> GraphSchema:
        filtered = self.bus.fire(SCHEMA_FILTER_POINT, schema, self._build_context)
        if not isinstance(filtered, GraphSchema):
            raise SchemaConfigurationError(
                f"'{SCHEMA_FILTER_POINT}' filter must return a GraphSchema, "
                f"got {type(filtered).__name__}"
            )
        if filtered is not schema:
            logger.info("GraphQL schema replaced by filter", extra={"point": SCHEMA_FILTER_POINT})
        return filtered

    def get_static_schema(self) -> str | None:
        """Raw SDL of the configured static schema, or None when absent or empty."""
        path = self.policies.static_schema_path
        if path is None or not path.is_file():
            return None
        sdl = path.read_text(encoding="utf-8")
        return sdl if sdl.strip() else None

    def invalidate(self) -> None:
        """Discard the cached schema, type registry and resolved policies."""
        with self._lock:
            had_schema = self._schema is not None
            self._discard()
            logger.info("GraphQL schema cache invalidated", extra={"had_schema": had_schema})

    @property
    def is_built(self) -> bool:
        return self._schema is not None

    def _discard(self) -> None:
        self._schema = None
        self._type_registry = None
        self._build_context = None
        self._schema_registry = None
        self._policies = None


# Process-wide defaults, initialized lazily on first access
_BUS: ExtensionPointBus | None = None
_CACHE: SchemaCache | None = None
_DEFAULTS_LOCK = threading.Lock()


def get_extension_bus() -> ExtensionPointBus:
    """Get the process-wide extension-point bus."""
    global _BUS
    with _DEFAULTS_LOCK:
        if _BUS is None:
            _BUS = ExtensionPointBus()
        return _BUS


def get_schema_cache() -> SchemaCache:
    """Get the process-wide schema cache, bound to the process-wide bus."""
    global _CACHE
    bus = get_extension_bus()
    with _DEFAULTS_LOCK:
        if _CACHE is None:
            _CACHE = SchemaCache(bus)
        return _CACHE


def get_schema() -> GraphSchema:
    return get_schema_cache().get_schema()


def get_type_registry() -> TypeRegistry:
    return get_schema_cache().get_type_registry()


def get_static_schema() -> str | None:
    return get_schema_cache().get_static_schema()


def invalidate_schema() -> None:
    get_schema_cache().invalidate()
