"""Tests for the type registry."""

from __future__ import annotations

import pytest
from graphql import GraphQLNonNull, GraphQLObjectType, GraphQLString

from graph_service.core.exceptions import (
    DuplicateFieldError,
    DuplicateTypeError,
    RegistryFrozenError,
    SchemaConfigurationError,
    UnknownTypeError,
)
from graph_service.features.graphql.definitions import FieldDefinition, TypeDefinition
from graph_service.features.graphql.entities import POST_TYPE, EntityRegistry, GraphEntity
from graph_service.features.graphql.type_registry import (
    BUILTIN_SCALARS,
    CAPABILITIES_EXTENSION,
    TypeRegistry,
)


@pytest.fixture
def registry() -> TypeRegistry:
    return TypeRegistry()


def widget(*fields: FieldDefinition) -> TypeDefinition:
    return TypeDefinition.object_type("Widget", fields=fields or [FieldDefinition("id", "ID")])


@pytest.mark.unit
class TestRegistration:
    """register_type / register_field semantics."""

    def test_builtin_scalars_preregistered(self, registry: TypeRegistry) -> None:
        for name in BUILTIN_SCALARS:
            assert name in registry
        assert registry.get_type("String").kind == "SCALAR"

    def test_identical_definition_is_idempotent(self, registry: TypeRegistry) -> None:
        first = registry.register_type(widget())
        second = registry.register_type(widget())

        assert second is first
        assert registry.type_names.count("Widget") == 1

    def test_different_definition_conflicts(self, registry: TypeRegistry) -> None:
        registry.register_type(widget())

        with pytest.raises(DuplicateTypeError) as exc_info:
            registry.register_type(widget(FieldDefinition("name", "String")))
        assert exc_info.value.type_name == "Widget"

    def test_name_unique_across_kinds(self, registry: TypeRegistry) -> None:
        registry.register_type(widget())

        with pytest.raises(DuplicateTypeError):
            registry.register_type(TypeDefinition.enum_type("Widget", values=["A"]))

    def test_register_field_on_unknown_type(self, registry: TypeRegistry) -> None:
        with pytest.raises(UnknownTypeError):
            registry.register_field("Missing", FieldDefinition("id", "ID"))

    def test_register_field_collision(self, registry: TypeRegistry) -> None:
        registry.register_type(widget())

        with pytest.raises(DuplicateFieldError) as exc_info:
            registry.register_field("Widget", FieldDefinition("id", "String"))
        assert exc_info.value.field_name == "id"

    def test_register_field_on_scalar_rejected(self, registry: TypeRegistry) -> None:
        with pytest.raises(SchemaConfigurationError, match="cannot have fields"):
            registry.register_field("String", FieldDefinition("length", "Int"))

    def test_get_type_missing_returns_none(self, registry: TypeRegistry) -> None:
        assert registry.get_type("Nope") is None
        assert registry.get_field("Nope", "id") is None

    def test_get_fields_returns_copy(self, registry: TypeRegistry) -> None:
        registry.register_type(widget())
        registry.get_fields("Widget").clear()

        assert list(registry.get_fields("Widget")) == ["id"]


@pytest.mark.unit
class TestAdjustments:
    """Post-build rename / remove operations and freezing."""

    def test_rename_field_keeps_position(self, registry: TypeRegistry) -> None:
        registry.register_type(
            widget(FieldDefinition("id", "ID"), FieldDefinition("title", "String"), FieldDefinition("n", "Int"))
        )

        registry.rename_field("Widget", "title", "name")

        assert list(registry.get_fields("Widget")) == ["id", "name", "n"]

    def test_rename_to_existing_name_conflicts(self, registry: TypeRegistry) -> None:
        registry.register_type(widget(FieldDefinition("id", "ID"), FieldDefinition("name", "String")))

        with pytest.raises(DuplicateFieldError):
            registry.rename_field("Widget", "id", "name")

    def test_remove_field_and_type(self, registry: TypeRegistry) -> None:
        registry.register_type(widget(FieldDefinition("id", "ID"), FieldDefinition("secret", "String")))

        assert registry.remove_field("Widget", "secret").name == "secret"
        assert registry.remove_field("Widget", "secret") is None
        assert registry.remove_type("Widget").name == "Widget"
        assert "Widget" not in registry

    def test_builtin_scalar_cannot_be_removed(self, registry: TypeRegistry) -> None:
        with pytest.raises(SchemaConfigurationError):
            registry.remove_type("ID")

    def test_frozen_registry_rejects_mutation(self, registry: TypeRegistry) -> None:
        registry.register_type(widget())
        registry.freeze()

        assert registry.is_frozen
        with pytest.raises(RegistryFrozenError):
            registry.register_type(TypeDefinition.enum_type("Color", values=["RED"]))
        with pytest.raises(RegistryFrozenError):
            registry.register_field("Widget", FieldDefinition("name", "String"))
        with pytest.raises(RegistryFrozenError):
            registry.remove_field("Widget", "id")


@pytest.mark.unit
class TestValidation:
    """validate() over the assembled graph."""

    def test_forward_reference_resolves_once_registered(self, registry: TypeRegistry) -> None:
        registry.register_type(
            TypeDefinition.object_type("Order", fields=[FieldDefinition("customer", "Customer")])
        )
        registry.register_type(
            TypeDefinition.object_type("Customer", fields=[FieldDefinition("orders", "[Order!]")])
        )

        registry.validate()

    def test_unresolved_reference_fails(self, registry: TypeRegistry) -> None:
        registry.register_type(
            TypeDefinition.object_type("Order", fields=[FieldDefinition("customer", "Customer")])
        )

        with pytest.raises(SchemaConfigurationError, match="unknown type 'Customer'") as exc_info:
            registry.validate()
        assert exc_info.value.extra["offending"] == ["Order"]

    def test_reports_every_problem(self, registry: TypeRegistry) -> None:
        registry.register_type(
            TypeDefinition.object_type(
                "Order",
                fields=[
                    FieldDefinition("customer", "Customer"),
                    FieldDefinition("lines", "[Line]", args={"filter": "LineFilter"}),
                ],
            )
        )

        with pytest.raises(SchemaConfigurationError) as exc_info:
            registry.validate()
        assert len(exc_info.value.extra["problems"]) == 3

    def test_object_type_needs_fields(self, registry: TypeRegistry) -> None:
        registry.register_type(TypeDefinition.object_type("Empty"))

        with pytest.raises(SchemaConfigurationError, match="one or more fields"):
            registry.validate()

    def test_argument_must_be_input_type(self, registry: TypeRegistry) -> None:
        registry.register_type(widget())
        registry.register_type(
            TypeDefinition.object_type(
                "Finder", fields=[FieldDefinition("find", "Widget", args={"like": "Widget"})]
            )
        )

        with pytest.raises(SchemaConfigurationError, match="must be an input type"):
            registry.validate()

    def test_interface_implementation_must_provide_fields(self, registry: TypeRegistry) -> None:
        registry.register_type(
            TypeDefinition.interface_type(
                "Node", fields=[FieldDefinition("id", "ID!"), FieldDefinition("uri", "String")]
            )
        )
        registry.register_type(
            TypeDefinition.object_type("Widget", fields=[FieldDefinition("id", "ID!")], interfaces=["Node"])
        )

        with pytest.raises(SchemaConfigurationError, match="missing field\\(s\\): uri"):
            registry.validate()

    def test_union_members_must_be_objects(self, registry: TypeRegistry) -> None:
        registry.register_type(TypeDefinition.union_type("Result", members=["String", "Ghost"]))

        with pytest.raises(SchemaConfigurationError) as exc_info:
            registry.validate()
        problems = exc_info.value.extra["problems"]
        assert any("must be an object type" in p for p in problems)
        assert any("unknown member type 'Ghost'" in p for p in problems)

    def test_entity_naming_checked(self, registry: TypeRegistry) -> None:
        entities = EntityRegistry()
        entities.register(GraphEntity("book", POST_TYPE, single_name="book"))

        with pytest.raises(SchemaConfigurationError, match="The book post_type isn't configured"):
            registry.validate(entities)


@pytest.mark.unit
class TestCompilation:
    """build_graphql_types() output."""

    def test_builds_self_referencing_types(self, registry: TypeRegistry) -> None:
        registry.register_type(
            TypeDefinition.object_type(
                "Category",
                fields=[
                    FieldDefinition("name", "String!"),
                    FieldDefinition("parent", "Category"),
                ],
            )
        )

        types = registry.build_graphql_types()
        category = types["Category"]

        assert isinstance(category, GraphQLObjectType)
        assert category.fields["parent"].type is category
        name_type = category.fields["name"].type
        assert isinstance(name_type, GraphQLNonNull)
        assert name_type.of_type is GraphQLString
        assert types["String"] is GraphQLString

    def test_capabilities_carried_as_field_extension(self, registry: TypeRegistry) -> None:
        registry.register_type(
            widget(FieldDefinition("secret", "String", capabilities={"admin"}))
        )

        field_def = registry.build_graphql_types()["Widget"].fields["secret"]

        assert field_def.extensions[CAPABILITIES_EXTENSION] == frozenset({"admin"})
