"""Custom exception classes for the application."""

from __future__ import annotations

from typing import Any


class AppException(Exception):
    """Base application exception.

    All custom exceptions should inherit from this class.
    Follows RFC 7807 Problem Details so operators get the same shape
    regardless of which layer raised the error.

    Attributes:
        status_code: HTTP-style status code for the error.
        detail: Human-readable error message.
        type: Error type identifier (used in RFC 7807 problem details).
        title: Short, human-readable summary of the problem type.
        extra: Additional context-specific information about the error.

    Example:
        raise AppException(
            status_code=500,
            detail="Schema build failed",
            type="schema-build-failed",
            extra={"phase": "graphql_register_types"},
        )
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            status_code: HTTP-style status code.
            detail: Human-readable error message.
            type: Error type identifier.
            title: Short summary of the problem type.
            extra: Additional context about the error.
        """
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or self._default_title(status_code)
        self.extra = extra or {}
        super().__init__(detail)

    @staticmethod
    def _default_title(status_code: int) -> str:
        """Get default title for a status code.

        Args:
            status_code: HTTP-style status code.

        Returns:
            Human-readable title for the status code.
        """
        titles = {
            400: "Bad Request",
            401: "Unauthorized",
            403: "Forbidden",
            404: "Not Found",
            409: "Conflict",
            500: "Internal Server Error",
        }
        return titles.get(status_code, "Error")


# ============================================================================
# Schema build errors
# ============================================================================


class SchemaBuildError(AppException):
    """Base class for errors that abort a schema build.

    Build errors are fatal: the build stops and nothing is cached.
    Unexpected exceptions raised by extension callbacks are re-raised
    as a plain ``SchemaBuildError`` chained to the original.
    """

    def __init__(
        self,
        detail: str,
        type: str = "schema-build-error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=500,
            detail=detail,
            type=type,
            title="Schema Build Error",
            extra=extra,
        )


class DuplicateTypeError(SchemaBuildError):
    """A different type definition was registered under an existing name."""

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(
            f"Type '{type_name}' is already registered with a different definition",
            type="duplicate-type",
            extra={"type_name": type_name},
        )


class DuplicateFieldError(SchemaBuildError):
    """A field name was registered twice on the same type."""

    def __init__(self, type_name: str, field_name: str) -> None:
        self.type_name = type_name
        self.field_name = field_name
        super().__init__(
            f"Field '{field_name}' is already registered on type '{type_name}'",
            type="duplicate-field",
            extra={"type_name": type_name, "field_name": field_name},
        )


class UnknownTypeError(SchemaBuildError):
    """A field was registered on a type that does not exist (yet)."""

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(
            f"Type '{type_name}' is not registered",
            type="unknown-type",
            extra={"type_name": type_name},
        )


class SchemaConfigurationError(SchemaBuildError):
    """The assembled graph is inconsistent or an entity is misconfigured.

    Example:
        raise SchemaConfigurationError(
            "The book post_type isn't configured properly to show in GraphQL. "
            'It needs a "single_name" and a "plural_name"',
            entity="book",
        )
    """

    def __init__(self, detail: str, **extra: Any) -> None:
        super().__init__(detail, type="schema-configuration", extra=extra)


class ConcurrentBuildError(SchemaBuildError):
    """A build was requested while another build was still running."""

    def __init__(self) -> None:
        super().__init__(
            "A schema build is already in progress",
            type="concurrent-build",
        )


class RegistryFrozenError(SchemaBuildError):
    """The type registry was mutated after it was frozen into a schema."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Cannot {operation}: the type registry is frozen",
            type="registry-frozen",
            extra={"operation": operation},
        )


__all__ = [
    "AppException",
    "ConcurrentBuildError",
    "DuplicateFieldError",
    "DuplicateTypeError",
    "RegistryFrozenError",
    "SchemaBuildError",
    "SchemaConfigurationError",
    "UnknownTypeError",
]
