"""Tests for type, field and argument definitions."""

from __future__ import annotations

import pytest

from graph_service.core.exceptions import SchemaConfigurationError
from graph_service.features.graphql.definitions import (
    ArgumentDefinition,
    FieldDefinition,
    TypeDefinition,
    TypeKind,
    TypeRef,
)


def test_type_ref_named_type_unwraps_list_and_non_null() -> None:
    assert TypeRef("[Widget!]!").named_type == "Widget"
    assert TypeRef("ID").named_type == "ID"
    assert str(TypeRef("[ID]")) == "[ID]"


def test_type_ref_rejects_invalid_expression() -> None:
    with pytest.raises(SchemaConfigurationError, match="Invalid type expression"):
        TypeRef("[Widget")


def test_field_definition_coerces_type_and_args() -> None:
    field_def = FieldDefinition("widget", "Widget", args={"id": "ID!"}, capabilities={"admin"})

    assert field_def.type == TypeRef("Widget")
    assert field_def.args == (ArgumentDefinition("id", TypeRef("ID!")),)
    assert field_def.capabilities == frozenset({"admin"})


def test_field_definition_rejects_duplicate_arguments() -> None:
    with pytest.raises(SchemaConfigurationError, match="Duplicate argument"):
        FieldDefinition(
            "widget",
            "Widget",
            args=[ArgumentDefinition("id", "ID"), ArgumentDefinition("id", "String")],
        )


@pytest.mark.parametrize("name", ["1widget", "wid-get", "__reserved", ""])
def test_invalid_names_rejected(name: str) -> None:
    with pytest.raises(SchemaConfigurationError):
        FieldDefinition(name, "String")


def stream_titles(_root, _info):
    return iter(())


def test_renamed_keeps_everything_but_the_name() -> None:
    original = FieldDefinition("title", "String", description="Title", capabilities={"edit"})
    renamed = original.renamed("headline")

    assert renamed.name == "headline"
    assert renamed.description == "Title"
    assert renamed.capabilities == original.capabilities
    assert renamed.subscribe is None
    streamed = FieldDefinition("title", "String", subscribe=stream_titles)
    assert streamed.renamed("headline").subscribe is stream_titles


def test_identical_definitions_compare_equal() -> None:
    first = TypeDefinition.object_type("Widget", fields=[FieldDefinition("id", "ID")])
    second = TypeDefinition.object_type("Widget", fields=[FieldDefinition("id", "ID")])

    assert first == second
    assert first != TypeDefinition.object_type("Widget", fields=[FieldDefinition("id", "ID!")])


def test_kind_constraints() -> None:
    with pytest.raises(SchemaConfigurationError, match="cannot declare fields"):
        TypeDefinition("Color", TypeKind.ENUM, fields=[FieldDefinition("id", "ID")], values=["RED"])
    with pytest.raises(SchemaConfigurationError, match="at least one member"):
        TypeDefinition.union_type("Anything", members=[])
    with pytest.raises(SchemaConfigurationError, match="at least one value"):
        TypeDefinition.enum_type("Color", values=[])


def test_type_kind_properties() -> None:
    assert TypeKind.INPUT_OBJECT.is_input
    assert not TypeKind.INPUT_OBJECT.is_output
    assert TypeKind.SCALAR.is_input and TypeKind.SCALAR.is_output
    assert not TypeKind.UNION.has_fields


@pytest.mark.parametrize("value", ["true", "false", "null", "red-ish", "1ST", "__HIDDEN"])
def test_invalid_enum_values_rejected(value: str) -> None:
    with pytest.raises(SchemaConfigurationError, match="Invalid value") as exc_info:
        TypeDefinition.enum_type("Color", values=["RED", value])

    assert exc_info.value.extra == {"type_name": "Color", "value": value}


def test_duplicate_enum_values_rejected() -> None:
    with pytest.raises(SchemaConfigurationError, match="Duplicate value 'RED'"):
        TypeDefinition.enum_type("Color", values=["RED", "GREEN", "RED"])
