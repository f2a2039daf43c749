"""Unit tests for modular Pydantic Settings v2."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from graph_service.core.settings.graphql import GraphQLSettings
from graph_service.core.settings.loader import (
    clear_all_caches,
    get_graphql_settings,
    get_logging_settings,
)
from graph_service.core.settings.logs import LoggingSettings


@pytest.mark.unit
class TestGraphQLSettings:
    """Test suite for GraphQLSettings."""

    def test_graphql_settings_defaults(self):
        settings = GraphQLSettings()

        assert settings.environment == "production"
        assert settings.debug is None
        assert settings.debug_mode_enabled is False
        assert settings.batch_queries_enabled is True
        assert settings.batch_limit == 10
        assert settings.tracing_user_role == "administrator"
        assert settings.static_schema_path is None
        assert not settings.is_development

    def test_graphql_settings_frozen(self):
        settings = GraphQLSettings()

        with pytest.raises(ValidationError):
            settings.batch_limit = 5

    def test_graphql_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("GRAPHQL_BATCH_LIMIT", "3")
        monkeypatch.setenv("GRAPHQL_TRACING_ENABLED", "true")

        settings = GraphQLSettings()

        assert settings.batch_limit == 3
        assert settings.tracing_enabled is True

    def test_graphql_settings_bounds(self):
        with pytest.raises(ValidationError):
            GraphQLSettings(batch_limit=0)
        with pytest.raises(ValidationError):
            GraphQLSettings(query_depth_max=0)


@pytest.mark.unit
class TestLoggingSettings:
    """Test suite for LoggingSettings."""

    def test_logging_settings_defaults(self):
        settings = LoggingSettings()

        assert settings.level == "INFO"
        assert settings.json_logs is True
        assert settings.to_logging_kwargs() == {
            "log_level": "INFO",
            "json_logs": True,
            "include_context": True,
            "service_name": "graph-service",
        }


@pytest.mark.unit
class TestSettingsLoaders:
    """Test suite for cached settings loaders."""

    def test_loaders_cache_instances(self):
        assert get_graphql_settings() is get_graphql_settings()
        assert get_logging_settings() is get_logging_settings()

    def test_clear_all_caches_reloads(self, monkeypatch):
        first = get_graphql_settings()
        monkeypatch.setenv("GRAPHQL_BATCH_LIMIT", "4")

        clear_all_caches()

        assert get_graphql_settings() is not first
        assert get_graphql_settings().batch_limit == 4
