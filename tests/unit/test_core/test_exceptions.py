"""Tests for core exceptions."""

from graph_service.core import exceptions as exc


def test_app_exception_defaults_title() -> None:
    error = exc.AppException(status_code=400, detail="bad")
    assert error.title == "Bad Request"
    assert error.extra == {}
    assert str(error) == "bad"


def test_schema_build_error_fields() -> None:
    error = exc.SchemaBuildError("phase failed", extra={"phase": "graphql_init"})
    assert error.status_code == 500
    assert error.type == "schema-build-error"
    assert error.title == "Schema Build Error"
    assert error.extra["phase"] == "graphql_init"


def test_duplicate_errors_carry_names() -> None:
    type_error = exc.DuplicateTypeError("Widget")
    field_error = exc.DuplicateFieldError("Widget", "name")

    assert type_error.extra == {"type_name": "Widget"}
    assert field_error.extra == {"type_name": "Widget", "field_name": "name"}
    assert "'name'" in field_error.detail


def test_configuration_error_keyword_extra() -> None:
    error = exc.SchemaConfigurationError("bad graph", problems=["a", "b"])
    assert error.type == "schema-configuration"
    assert error.extra["problems"] == ["a", "b"]


def test_all_build_errors_share_a_base() -> None:
    for error in (
        exc.ConcurrentBuildError(),
        exc.RegistryFrozenError("register type"),
        exc.UnknownTypeError("Ghost"),
    ):
        assert isinstance(error, exc.SchemaBuildError)
