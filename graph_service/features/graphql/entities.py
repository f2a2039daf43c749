"""Content entities exposed to the graph.

Post types, taxonomies and custom entities opt into the graph with
``show_in_graph``. Every opted-in entity needs both a singular and a plural
public name; the names become root field names for whoever contributes the
entity's types. Entities are registered during the pre-init phase.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from graph_service.core.exceptions import SchemaConfigurationError

if TYPE_CHECKING:
    from graph_service.features.graphql.hooks import ExtensionPointBus

logger = logging.getLogger(__name__)

__all__ = [
    "ALLOWED_POST_TYPES_POINT",
    "ALLOWED_TAXONOMIES_POINT",
    "POST_TYPE",
    "TAXONOMY",
    "EntityRegistry",
    "GraphEntity",
    "register_default_entities",
]

POST_TYPE = "post_type"
TAXONOMY = "taxonomy"

ALLOWED_POST_TYPES_POINT = "graphql_post_entities_allowed_post_types"
ALLOWED_TAXONOMIES_POINT = "graphql_term_entities_allowed_taxonomies"

_ALLOWED_POINTS = {
    POST_TYPE: ALLOWED_POST_TYPES_POINT,
    TAXONOMY: ALLOWED_TAXONOMIES_POINT,
}


@dataclass(frozen=True)
class GraphEntity:
    """A content entity that may be exposed in the graph.

    Attributes:
        name: Internal entity name (e.g. ``post_tag``)
        kind: ``post_type``, ``taxonomy`` or any custom kind
        show_in_graph: Whether the entity opted into the graph
        single_name: Public singular name (e.g. ``tag``)
        plural_name: Public plural name (e.g. ``tags``)
    """

    name: str
    kind: str
    show_in_graph: bool = True
    single_name: str | None = None
    plural_name: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.single_name) and bool(self.plural_name)

    def naming_problem(self) -> str | None:
        """Describe the missing public names, or None when configured."""
        if not self.show_in_graph or self.is_configured:
            return None
        return (
            f"The {self.name} {self.kind} isn't configured properly to show in GraphQL. "
            'It needs a "single_name" and a "plural_name"'
        )


class EntityRegistry:
    """Catalogue of entities keyed by (kind, name).

    Registering an entity again under the same kind and name replaces the
    earlier registration, so a later contributor can adjust a built-in
    entity (for example to hide it from the graph).
    """

    def __init__(self) -> None:
        self._entities: dict[tuple[str, str], GraphEntity] = {}

    def register(self, entity: GraphEntity) -> GraphEntity:
        key = (entity.kind, entity.name)
        if key in self._entities:
            logger.debug(
                "Replacing graph entity",
                extra={"entity": entity.name, "kind": entity.kind},
            )
        self._entities[key] = entity
        return entity

    def get(self, kind: str, name: str) -> GraphEntity | None:
        return self._entities.get((kind, name))

    def entities(self, kind: str | None = None) -> list[GraphEntity]:
        """All registered entities, optionally filtered by kind."""
        return [e for e in self._entities.values() if kind is None or e.kind == kind]

    def exposed(self, kind: str | None = None) -> list[GraphEntity]:
        """Entities that opted into the graph."""
        return [e for e in self.entities(kind) if e.show_in_graph]

    def naming_problems(self) -> list[tuple[GraphEntity, str]]:
        """Every opted-in entity lacking a singular or plural name."""
        problems = []
        for entity in self.exposed():
            problem = entity.naming_problem()
            if problem:
                problems.append((entity, problem))
        return problems

    def allowed(self, kind: str, bus: ExtensionPointBus | None = None) -> list[str]:
        """Names of the opted-in entities of ``kind``.

        Every opted-in entity must be properly named. The list then passes
        through the kind's filter point so extensions can add or remove
        entries.

        Raises:
            SchemaConfigurationError: If an opted-in entity lacks a public name
        """
        names = []
        for entity in self.exposed(kind):
            problem = entity.naming_problem()
            if problem:
                raise SchemaConfigurationError(problem, entity=entity.name, kind=kind)
            names.append(entity.name)

        point = _ALLOWED_POINTS.get(kind)
        if bus is not None and point is not None:
            names = list(bus.fire(point, names))
        return names

    def __len__(self) -> int:
        return len(self._entities)


def register_default_entities(registry: EntityRegistry) -> EntityRegistry:
    """Expose the built-in post types and taxonomies."""
    for entity in (
        GraphEntity("attachment", POST_TYPE, single_name="mediaItem", plural_name="mediaItems"),
        GraphEntity("page", POST_TYPE, single_name="page", plural_name="pages"),
        GraphEntity("post", POST_TYPE, single_name="post", plural_name="posts"),
        GraphEntity("category", TAXONOMY, single_name="category", plural_name="categories"),
        GraphEntity("post_tag", TAXONOMY, single_name="tag", plural_name="tags"),
        GraphEntity("post_format", TAXONOMY, single_name="postFormat", plural_name="postFormats"),
    ):
        registry.register(entity)
    return registry
