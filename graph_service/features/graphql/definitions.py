"""Type and field definitions contributed to the type registry.

Definitions are plain, immutable values. A field's type is a ``TypeRef``: an
SDL type expression such as ``"[Widget!]!"`` that is only resolved to a
concrete GraphQL type once every registration phase has run. This lets type A
reference type B before B is registered, and lets types reference themselves.

Example:
    WIDGET = TypeDefinition.object_type(
        "Widget",
        fields=[
            FieldDefinition("id", "ID!"),
            FieldDefinition("name", "String"),
            FieldDefinition("related", "[Widget!]"),
        ],
    )
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from graphql import (
    GraphQLError,
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLType,
    ListTypeNode,
    NamedTypeNode,
    NonNullTypeNode,
    TypeNode,
    Undefined,
    parse_type,
)

from graph_service.core.exceptions import SchemaConfigurationError

__all__ = [
    "ArgumentDefinition",
    "FieldDefinition",
    "Resolver",
    "TypeDefinition",
    "TypeKind",
    "TypeRef",
]

Resolver = Callable[..., Any]

_NAME_RE = re.compile(r"^[_a-zA-Z][_a-zA-Z0-9]*$")
_RESERVED_ENUM_VALUES = frozenset({"true", "false", "null"})


def _check_name(name: str, what: str) -> None:
    if not _NAME_RE.match(name) or name.startswith("__"):
        raise SchemaConfigurationError(f"Invalid {what} name '{name}'", name=name)


def _check_enum_values(type_name: str, values: tuple[str, ...]) -> None:
    seen: set[str] = set()
    for value in values:
        if not _NAME_RE.match(value) or value.startswith("__") or value in _RESERVED_ENUM_VALUES:
            raise SchemaConfigurationError(
                f"Invalid value '{value}' on enum '{type_name}'",
                type_name=type_name,
                value=value,
            )
        if value in seen:
            raise SchemaConfigurationError(
                f"Duplicate value '{value}' on enum '{type_name}'",
                type_name=type_name,
                value=value,
            )
        seen.add(value)


class TypeKind(StrEnum):
    """Kinds of named types the registry can hold."""

    OBJECT = "OBJECT"
    INTERFACE = "INTERFACE"
    UNION = "UNION"
    ENUM = "ENUM"
    SCALAR = "SCALAR"
    INPUT_OBJECT = "INPUT_OBJECT"

    @property
    def has_fields(self) -> bool:
        return self in (TypeKind.OBJECT, TypeKind.INTERFACE, TypeKind.INPUT_OBJECT)

    @property
    def is_input(self) -> bool:
        """Whether values of this kind may be used as arguments."""
        return self in (TypeKind.SCALAR, TypeKind.ENUM, TypeKind.INPUT_OBJECT)

    @property
    def is_output(self) -> bool:
        """Whether values of this kind may be returned by fields."""
        return self is not TypeKind.INPUT_OBJECT


@dataclass(frozen=True)
class TypeRef:
    """Deferred reference to a named type, including list/non-null wrappers.

    Attributes:
        expression: SDL type expression, e.g. ``"Widget"`` or ``"[ID!]!"``
    """

    expression: str

    def __post_init__(self) -> None:
        try:
            node = parse_type(self.expression)
        except GraphQLError as exc:
            raise SchemaConfigurationError(
                f"Invalid type expression '{self.expression}': {exc.message}",
                expression=self.expression,
            ) from exc
        object.__setattr__(self, "_node", node)

    @classmethod
    def coerce(cls, value: str | TypeRef) -> TypeRef:
        """Accept either a TypeRef or an SDL type expression."""
        return value if isinstance(value, TypeRef) else cls(value)

    @property
    def named_type(self) -> str:
        """Name of the innermost named type."""
        node: TypeNode = self._node  # type: ignore[attr-defined]
        while not isinstance(node, NamedTypeNode):
            node = node.type  # type: ignore[attr-defined]
        return node.name.value

    def resolve(self, lookup: Callable[[str], GraphQLNamedType]) -> GraphQLType:
        """Resolve to a concrete GraphQL type using ``lookup`` for names."""
        return _wrap(self._node, lookup)  # type: ignore[attr-defined]

    def __str__(self) -> str:
        return self.expression


def _wrap(node: TypeNode, lookup: Callable[[str], GraphQLNamedType]) -> GraphQLType:
    if isinstance(node, NonNullTypeNode):
        return GraphQLNonNull(_wrap(node.type, lookup))  # type: ignore[arg-type]
    if isinstance(node, ListTypeNode):
        return GraphQLList(_wrap(node.type, lookup))
    return lookup(node.name.value)  # type: ignore[attr-defined]


@dataclass(frozen=True)
class ArgumentDefinition:
    """A field argument (or an input object field)."""

    name: str
    type: TypeRef
    default_value: Any = Undefined
    description: str | None = None

    def __post_init__(self) -> None:
        _check_name(self.name, "argument")
        object.__setattr__(self, "type", TypeRef.coerce(self.type))


def _coerce_args(
    args: Mapping[str, str | TypeRef | ArgumentDefinition] | Iterable[ArgumentDefinition],
) -> tuple[ArgumentDefinition, ...]:
    if isinstance(args, Mapping):
        coerced = []
        for name, value in args.items():
            if isinstance(value, ArgumentDefinition):
                coerced.append(value)
            else:
                coerced.append(ArgumentDefinition(name, TypeRef.coerce(value)))
        return tuple(coerced)
    return tuple(args)


@dataclass(frozen=True)
class FieldDefinition:
    """A field on an object, interface or input object type.

    Attributes:
        name: Field name, unique within the owning type
        type: Output (or input) type, resolved lazily
        args: Ordered argument definitions; a mapping of name to type
            expression is accepted as shorthand
        resolve: Resolver; None uses the executor's default property lookup
        subscribe: Event-stream source for subscription root fields; each event
            becomes the source value ``resolve`` receives
        capabilities: Capability tags a viewer needs to resolve this field
        description: Human readable description
        deprecation_reason: Marks the field deprecated when set
        default_value: Default for input object fields
    """

    name: str
    type: TypeRef
    args: tuple[ArgumentDefinition, ...] = ()
    resolve: Resolver | None = None
    subscribe: Resolver | None = None
    capabilities: frozenset[str] = frozenset()
    description: str | None = None
    deprecation_reason: str | None = None
    default_value: Any = Undefined

    def __post_init__(self) -> None:
        _check_name(self.name, "field")
        object.__setattr__(self, "type", TypeRef.coerce(self.type))
        object.__setattr__(self, "args", _coerce_args(self.args))
        object.__setattr__(self, "capabilities", frozenset(self.capabilities))

        seen: set[str] = set()
        for arg in self.args:
            if arg.name in seen:
                raise SchemaConfigurationError(
                    f"Duplicate argument '{arg.name}' on field '{self.name}'",
                    field=self.name,
                    argument=arg.name,
                )
            seen.add(arg.name)

    def renamed(self, name: str) -> FieldDefinition:
        """Copy of this field under a new name."""
        return FieldDefinition(
            name=name,
            type=self.type,
            args=self.args,
            resolve=self.resolve,
            subscribe=self.subscribe,
            capabilities=self.capabilities,
            description=self.description,
            deprecation_reason=self.deprecation_reason,
            default_value=self.default_value,
        )


@dataclass(frozen=True)
class TypeDefinition:
    """A named type declared by a contributor.

    Only the attributes relevant to ``kind`` are used: ``fields`` for object,
    interface and input object types, ``interfaces`` for object and interface
    types, ``members`` for unions, ``values`` for enums and the
    ``serialize``/``parse_*`` hooks for custom scalars.

    Two definitions are identical when every attribute compares equal;
    callables compare by identity.
    """

    name: str
    kind: TypeKind
    fields: tuple[FieldDefinition, ...] = ()
    interfaces: tuple[str, ...] = ()
    members: tuple[str, ...] = ()
    values: tuple[str, ...] = ()
    description: str | None = None
    resolve_type: Resolver | None = None
    is_type_of: Resolver | None = None
    serialize: Callable[[Any], Any] | None = None
    parse_value: Callable[[Any], Any] | None = None
    parse_literal: Callable[..., Any] | None = None
    extensions: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        _check_name(self.name, "type")
        object.__setattr__(self, "kind", TypeKind(self.kind))
        for attr in ("fields", "interfaces", "members", "values"):
            object.__setattr__(self, attr, tuple(getattr(self, attr)))

        if self.fields and not self.kind.has_fields:
            raise SchemaConfigurationError(
                f"Type '{self.name}' of kind {self.kind} cannot declare fields",
                type_name=self.name,
            )
        if self.interfaces and self.kind not in (TypeKind.OBJECT, TypeKind.INTERFACE):
            raise SchemaConfigurationError(
                f"Type '{self.name}' of kind {self.kind} cannot implement interfaces",
                type_name=self.name,
            )
        if self.kind is TypeKind.UNION and not self.members:
            raise SchemaConfigurationError(
                f"Union '{self.name}' must declare at least one member type",
                type_name=self.name,
            )
        if self.kind is TypeKind.ENUM and not self.values:
            raise SchemaConfigurationError(
                f"Enum '{self.name}' must declare at least one value",
                type_name=self.name,
            )
        if self.kind is TypeKind.ENUM:
            _check_enum_values(self.name, self.values)

    # ------------------------------------------------------------------
    # Convenience constructors
    # ------------------------------------------------------------------

    @classmethod
    def object_type(
        cls,
        name: str,
        fields: Iterable[FieldDefinition] = (),
        interfaces: Iterable[str] = (),
        description: str | None = None,
        is_type_of: Resolver | None = None,
    ) -> TypeDefinition:
        return cls(
            name,
            TypeKind.OBJECT,
            fields=tuple(fields),
            interfaces=tuple(interfaces),
            description=description,
            is_type_of=is_type_of,
        )

    @classmethod
    def interface_type(
        cls,
        name: str,
        fields: Iterable[FieldDefinition] = (),
        interfaces: Iterable[str] = (),
        description: str | None = None,
        resolve_type: Resolver | None = None,
    ) -> TypeDefinition:
        return cls(
            name,
            TypeKind.INTERFACE,
            fields=tuple(fields),
            interfaces=tuple(interfaces),
            description=description,
            resolve_type=resolve_type,
        )

    @classmethod
    def union_type(
        cls,
        name: str,
        members: Iterable[str],
        description: str | None = None,
        resolve_type: Resolver | None = None,
    ) -> TypeDefinition:
        return cls(
            name,
            TypeKind.UNION,
            members=tuple(members),
            description=description,
            resolve_type=resolve_type,
        )

    @classmethod
    def enum_type(
        cls, name: str, values: Iterable[str], description: str | None = None
    ) -> TypeDefinition:
        return cls(name, TypeKind.ENUM, values=tuple(values), description=description)

    @classmethod
    def scalar_type(
        cls,
        name: str,
        description: str | None = None,
        serialize: Callable[[Any], Any] | None = None,
        parse_value: Callable[[Any], Any] | None = None,
        parse_literal: Callable[..., Any] | None = None,
    ) -> TypeDefinition:
        return cls(
            name,
            TypeKind.SCALAR,
            description=description,
            serialize=serialize,
            parse_value=parse_value,
            parse_literal=parse_literal,
        )

    @classmethod
    def input_type(
        cls,
        name: str,
        fields: Iterable[FieldDefinition] = (),
        description: str | None = None,
    ) -> TypeDefinition:
        return cls(name, TypeKind.INPUT_OBJECT, fields=tuple(fields), description=description)

    def referenced_types(self) -> set[str]:
        """Names this definition points at outside of its fields."""
        return set(self.interfaces) | set(self.members)
