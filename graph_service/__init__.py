"""Graph service: a GraphQL schema assembled from independently loaded extensions."""

from __future__ import annotations

__version__ = "0.1.0"
