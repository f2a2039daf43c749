"""GraphQL policy settings.

Controls debug mode, tracing, query logs, batching, depth limits and
introspection. Environment variables use GRAPHQL_ prefix.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["local", "development", "staging", "production"]


class GraphQLSettings(BaseSettings):
    """GraphQL policy configuration.

    Environment variables use GRAPHQL_ prefix.
    Example: GRAPHQL_TRACING_ENABLED=true, GRAPHQL_BATCH_LIMIT=5

    ``debug`` is the explicit override (GRAPHQL_DEBUG). When it is unset the
    stored ``debug_mode_enabled`` value applies.
    """

    environment: Environment = Field(
        default="production",
        description="Deployment environment; drives the public introspection default",
    )

    # Debug mode
    debug: bool | None = Field(
        default=None,
        description="Explicit debug override; wins over debug_mode_enabled when set",
    )
    debug_mode_enabled: bool = Field(
        default=False,
        description="Report internal error details in GraphQL responses",
    )

    # Access
    restrict_endpoint_to_logged_in_users: bool = Field(
        default=False,
        description="Reject operations from anonymous viewers",
    )
    public_introspection_enabled: bool | None = Field(
        default=None,
        description="Allow introspection for anonymous viewers (default depends on environment)",
    )

    # Batching
    batch_queries_enabled: bool = Field(
        default=True,
        description="Accept batched operations in a single request",
    )
    batch_limit: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Maximum number of operations in one batch",
    )

    # Query depth
    query_depth_enabled: bool = Field(
        default=False,
        description="Enforce a maximum query depth",
    )
    query_depth_max: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum query nesting depth",
    )

    # Tracing / query logs
    tracing_enabled: bool = Field(
        default=False,
        description="Add resolver trace data to the response extensions",
    )
    tracing_user_role: str = Field(
        default="administrator",
        description="Only trace requests from viewers with this role ('any' for everyone)",
    )
    query_logs_enabled: bool = Field(
        default=False,
        description="Add data-access logs to the response extensions",
    )
    query_log_user_role: str = Field(
        default="administrator",
        description="Only log queries for viewers with this role ('any' for everyone)",
    )

    # Static schema
    static_schema_path: Path | None = Field(
        default=None,
        description="Pre-built SDL document used instead of dynamic assembly when present",
    )

    model_config = SettingsConfigDict(
        env_prefix="GRAPHQL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def is_development(self) -> bool:
        """Check if running in a local or development environment."""
        return self.environment in ("local", "development")
