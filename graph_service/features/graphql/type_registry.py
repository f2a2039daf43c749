"""Type registry: the catalogue of named graph types and their fields.

The registry is mutable while a build runs and read-only once frozen into a
schema. Field types are deferred references, so registration order between
types does not matter; references are checked by ``validate()`` after every
registration phase has run, and resolved by ``build_graphql_types()`` through
graphql-core thunks, which also makes circular references work.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from graphql import (
    GraphQLArgument,
    GraphQLBoolean,
    GraphQLEnumType,
    GraphQLEnumValue,
    GraphQLField,
    GraphQLFloat,
    GraphQLID,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInt,
    GraphQLInterfaceType,
    GraphQLNamedType,
    GraphQLObjectType,
    GraphQLScalarType,
    GraphQLString,
    GraphQLUnionType,
)

from graph_service.core.exceptions import (
    DuplicateFieldError,
    DuplicateTypeError,
    RegistryFrozenError,
    SchemaConfigurationError,
    UnknownTypeError,
)
from graph_service.features.graphql.definitions import (
    FieldDefinition,
    TypeDefinition,
    TypeKind,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from graph_service.features.graphql.entities import EntityRegistry

logger = logging.getLogger(__name__)

__all__ = ["BUILTIN_SCALARS", "CAPABILITIES_EXTENSION", "TypeRegistry"]

BUILTIN_SCALARS: dict[str, GraphQLScalarType] = {
    "String": GraphQLString,
    "Int": GraphQLInt,
    "Float": GraphQLFloat,
    "Boolean": GraphQLBoolean,
    "ID": GraphQLID,
}

# Key under GraphQLField.extensions holding the field's required capabilities
CAPABILITIES_EXTENSION = "capabilities"


class TypeRegistry:
    """Mutable, then frozen, catalogue of named types.

    Type names are unique across every kind. Registering an identical
    definition twice is a no-op so several extensions can declare a shared
    dependency; a different definition under an existing name is a conflict.

    Example:
        registry = TypeRegistry()
        registry.register_type(TypeDefinition.object_type("Widget"))
        registry.register_field("Widget", FieldDefinition("name", "String"))
        registry.validate()
    """

    def __init__(self) -> None:
        """Initialize the registry with the built-in scalars."""
        self._types: dict[str, TypeDefinition] = {}
        self._fields: dict[str, dict[str, FieldDefinition]] = {}
        self._frozen = False

        for name in BUILTIN_SCALARS:
            self.register_type(TypeDefinition.scalar_type(name))

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_type(self, definition: TypeDefinition) -> TypeDefinition:
        """Register a named type.

        Args:
            definition: The type to register

        Returns:
            The registered definition

        Raises:
            DuplicateTypeError: If a different definition owns the name
            DuplicateFieldError: If the definition repeats a field name
            RegistryFrozenError: If the registry is frozen
        """
        self._check_mutable("register type")

        existing = self._types.get(definition.name)
        if existing is not None:
            if existing == definition:
                logger.debug(
                    "Type already registered with an identical definition",
                    extra={"type_name": definition.name},
                )
                return existing
            raise DuplicateTypeError(definition.name)

        fields: dict[str, FieldDefinition] = {}
        for field_def in definition.fields:
            if field_def.name in fields:
                raise DuplicateFieldError(definition.name, field_def.name)
            fields[field_def.name] = field_def

        self._types[definition.name] = definition
        self._fields[definition.name] = fields
        logger.debug(
            "Registered type",
            extra={"type_name": definition.name, "kind": str(definition.kind)},
        )
        return definition

    def register_types(self, definitions: Iterable[TypeDefinition]) -> None:
        for definition in definitions:
            self.register_type(definition)

    def register_field(self, type_name: str, field_def: FieldDefinition) -> FieldDefinition:
        """Add a field to an already registered type.

        Raises:
            UnknownTypeError: If ``type_name`` is not registered
            DuplicateFieldError: If the type already has a field with that name
            SchemaConfigurationError: If the type's kind has no fields
            RegistryFrozenError: If the registry is frozen
        """
        self._check_mutable("register field")
        fields = self._owned_fields(type_name)

        if field_def.name in fields:
            raise DuplicateFieldError(type_name, field_def.name)

        fields[field_def.name] = field_def
        logger.debug(
            "Registered field",
            extra={"type_name": type_name, "field_name": field_def.name},
        )
        return field_def

    def register_fields(self, type_name: str, fields: Iterable[FieldDefinition]) -> None:
        for field_def in fields:
            self.register_field(type_name, field_def)

    # ------------------------------------------------------------------
    # Post-build adjustments
    # ------------------------------------------------------------------

    def rename_field(self, type_name: str, old_name: str, new_name: str) -> FieldDefinition:
        """Rename a field in place, keeping its position."""
        self._check_mutable("rename field")
        fields = self._owned_fields(type_name)

        if old_name not in fields:
            raise SchemaConfigurationError(
                f"Type '{type_name}' has no field '{old_name}' to rename",
                type_name=type_name,
                field_name=old_name,
            )
        if new_name in fields:
            raise DuplicateFieldError(type_name, new_name)

        renamed = fields[old_name].renamed(new_name)
        self._fields[type_name] = {
            (new_name if name == old_name else name): (renamed if name == old_name else f)
            for name, f in fields.items()
        }
        return renamed

    def remove_field(self, type_name: str, field_name: str) -> FieldDefinition | None:
        """Suppress a field. Returns the removed field, if any."""
        self._check_mutable("remove field")
        return self._owned_fields(type_name).pop(field_name, None)

    def remove_type(self, type_name: str) -> TypeDefinition | None:
        """Suppress a whole type. Returns the removed definition, if any."""
        self._check_mutable("remove type")
        if type_name in BUILTIN_SCALARS:
            raise SchemaConfigurationError(
                f"Built-in scalar '{type_name}' cannot be removed",
                type_name=type_name,
            )
        self._fields.pop(type_name, None)
        return self._types.pop(type_name, None)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_type(self, name: str) -> TypeDefinition | None:
        """Return the definition for ``name``, or None when it is not registered."""
        return self._types.get(name)

    def get_fields(self, type_name: str) -> dict[str, FieldDefinition]:
        """Copy of the fields registered on ``type_name``.

        Raises:
            UnknownTypeError: If ``type_name`` is not registered
        """
        if type_name not in self._types:
            raise UnknownTypeError(type_name)
        return dict(self._fields[type_name])

    def get_field(self, type_name: str, field_name: str) -> FieldDefinition | None:
        return self._fields.get(type_name, {}).get(field_name)

    @property
    def type_names(self) -> list[str]:
        """Registered type names in registration order."""
        return list(self._types)

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)

    def __iter__(self) -> Iterator[TypeDefinition]:
        return iter(list(self._types.values()))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True
        logger.debug("Type registry frozen", extra={"types": len(self._types)})

    def validate(self, entities: EntityRegistry | None = None) -> None:
        """Check the assembled graph for consistency.

        Checks that every deferred reference names a registered type of a
        suitable kind, that every opted-in entity has public names, that types
        with fields define at least one, and that types declaring an
        interface provide all of the interface's fields.

        Raises:
            SchemaConfigurationError: Listing every problem found
        """
        problems: list[str] = []
        offending: list[str] = []

        for definition in self._types.values():
            type_problems = self._type_problems(definition)
            if type_problems:
                offending.append(definition.name)
                problems.extend(type_problems)

        if entities is not None:
            for entity, problem in entities.naming_problems():
                offending.append(entity.name)
                problems.append(problem)

        if problems:
            logger.error(
                "Type registry validation failed",
                extra={"problems": problems},
            )
            raise SchemaConfigurationError(
                "Schema validation failed: " + "; ".join(problems),
                problems=problems,
                offending=offending,
            )

    def _type_problems(self, definition: TypeDefinition) -> list[str]:
        problems: list[str] = []
        name = definition.name
        fields = self._fields[name]

        if definition.kind.has_fields and not fields:
            problems.append(f"Type '{name}' must define one or more fields")

        for field_def in fields.values():
            location = f"{name}.{field_def.name}"
            target = self._types.get(field_def.type.named_type)
            if target is None:
                problems.append(
                    f"Field '{location}' references unknown type '{field_def.type.named_type}'"
                )
            elif definition.kind is TypeKind.INPUT_OBJECT and not target.kind.is_input:
                problems.append(
                    f"Input field '{location}' must be an input type, got {target.kind} '{target.name}'"
                )
            elif definition.kind is not TypeKind.INPUT_OBJECT and not target.kind.is_output:
                problems.append(
                    f"Field '{location}' must be an output type, got {target.kind} '{target.name}'"
                )

            for arg in field_def.args:
                arg_target = self._types.get(arg.type.named_type)
                if arg_target is None:
                    problems.append(
                        f"Argument '{location}({arg.name}:)' references unknown type "
                        f"'{arg.type.named_type}'"
                    )
                elif not arg_target.kind.is_input:
                    problems.append(
                        f"Argument '{location}({arg.name}:)' must be an input type, "
                        f"got {arg_target.kind} '{arg_target.name}'"
                    )

        for member in definition.members:
            target = self._types.get(member)
            if target is None:
                problems.append(f"Union '{name}' references unknown member type '{member}'")
            elif target.kind is not TypeKind.OBJECT:
                problems.append(f"Union '{name}' member '{member}' must be an object type")

        for interface_name in definition.interfaces:
            interface = self._types.get(interface_name)
            if interface is None:
                problems.append(f"Type '{name}' implements unknown interface '{interface_name}'")
                continue
            if interface.kind is not TypeKind.INTERFACE:
                problems.append(
                    f"Type '{name}' implements '{interface_name}', which is not an interface"
                )
                continue
            missing = [f for f in self._fields[interface_name] if f not in fields]
            if missing:
                problems.append(
                    f"Type '{name}' implements '{interface_name}' but is missing "
                    f"field(s): {', '.join(missing)}"
                )

        return problems

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def build_graphql_types(self) -> dict[str, GraphQLNamedType]:
        """Compile every definition into a graphql-core named type.

        Fields, interfaces and union members are thunks over the returned
        mapping, so they are only resolved when graphql-core first needs them.
        """
        compiled: dict[str, GraphQLNamedType] = {}

        def lookup(name: str) -> GraphQLNamedType:
            try:
                return compiled[name]
            except KeyError:
                raise UnknownTypeError(name) from None

        for name, definition in self._types.items():
            compiled[name] = self._compile_type(definition, self._fields[name], lookup)
        return compiled

    def _compile_type(
        self,
        definition: TypeDefinition,
        fields: dict[str, FieldDefinition],
        lookup: Callable[[str], GraphQLNamedType],
    ) -> GraphQLNamedType:
        kind = definition.kind
        name = definition.name

        if kind is TypeKind.SCALAR:
            if name in BUILTIN_SCALARS:
                return BUILTIN_SCALARS[name]
            scalar_kwargs: dict[str, Any] = {
                key: value
                for key, value in (
                    ("serialize", definition.serialize),
                    ("parse_value", definition.parse_value),
                    ("parse_literal", definition.parse_literal),
                )
                if value is not None
            }
            return GraphQLScalarType(name, description=definition.description, **scalar_kwargs)

        if kind is TypeKind.ENUM:
            return GraphQLEnumType(
                name,
                {value: GraphQLEnumValue(value) for value in definition.values},
                description=definition.description,
            )

        if kind is TypeKind.UNION:
            members = definition.members
            return GraphQLUnionType(
                name,
                types=lambda: [lookup(member) for member in members],
                resolve_type=definition.resolve_type,
                description=definition.description,
            )

        if kind is TypeKind.INPUT_OBJECT:
            return GraphQLInputObjectType(
                name,
                fields=lambda: {
                    f.name: GraphQLInputField(
                        f.type.resolve(lookup),  # type: ignore[arg-type]
                        default_value=f.default_value,
                        description=f.description,
                    )
                    for f in fields.values()
                },
                description=definition.description,
            )

        interfaces = definition.interfaces

        def field_thunk() -> dict[str, GraphQLField]:
            return {f.name: _compile_field(f, lookup) for f in fields.values()}

        def interface_thunk() -> list[GraphQLInterfaceType]:
            return [lookup(i) for i in interfaces]  # type: ignore[misc]

        if kind is TypeKind.INTERFACE:
            return GraphQLInterfaceType(
                name,
                fields=field_thunk,
                interfaces=interface_thunk,
                resolve_type=definition.resolve_type,
                description=definition.description,
            )

        return GraphQLObjectType(
            name,
            fields=field_thunk,
            interfaces=interface_thunk,
            is_type_of=definition.is_type_of,
            description=definition.description,
        )

    def _owned_fields(self, type_name: str) -> dict[str, FieldDefinition]:
        definition = self._types.get(type_name)
        if definition is None:
            raise UnknownTypeError(type_name)
        if not definition.kind.has_fields:
            raise SchemaConfigurationError(
                f"Type '{type_name}' of kind {definition.kind} cannot have fields",
                type_name=type_name,
            )
        return self._fields[type_name]

    def _check_mutable(self, operation: str) -> None:
        if self._frozen:
            raise RegistryFrozenError(operation)


def _compile_field(
    field_def: FieldDefinition, lookup: Callable[[str], GraphQLNamedType]
) -> GraphQLField:
    return GraphQLField(
        field_def.type.resolve(lookup),  # type: ignore[arg-type]
        args={
            arg.name: GraphQLArgument(
                arg.type.resolve(lookup),  # type: ignore[arg-type]
                default_value=arg.default_value,
                description=arg.description,
            )
            for arg in field_def.args
        },
        resolve=field_def.resolve,
        subscribe=field_def.subscribe,
        description=field_def.description,
        deprecation_reason=field_def.deprecation_reason,
        extensions={CAPABILITIES_EXTENSION: field_def.capabilities},
    )
