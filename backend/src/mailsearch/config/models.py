"""
Configuration Models.

All configuration models use Pydantic for validation benefits.
"""

from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# -----------------------------------------------------------------------------
# Environment Variable Helper
# -----------------------------------------------------------------------------

ENV_PREFIX = "MAILSEARCH_"


def _env(key: str, default: Any, value_type: type = str) -> Any:
    """
    Get environment variable with MAILSEARCH_ prefix fallback.

    Args:
        key: Environment variable name (without prefix)
        default: Default value if not set
        value_type: Type to convert value to

    Returns:
        Environment variable value or default
    """
    env_key = f"{ENV_PREFIX}{key}"

    value = os.getenv(env_key)
    source_key = env_key if value is not None else None
    if value is None:
        value = os.getenv(key)
        if value is not None:
            source_key = key

    if value is None:
        return default
    try:
        if value_type is bool:
            normalized = str(value).strip().lower()
            if normalized in ("true", "1", "yes", "on"):
                return True
            if normalized in ("false", "0", "no", "off"):
                return False
            raise ValueError("Invalid boolean value")
        if value_type is int:
            return int(value)
        if value_type is float:
            return float(value)
        return value
    except (ValueError, TypeError) as exc:
        key_name = source_key or key
        raise ValueError(
            f"Invalid value for {key_name}; expected {value_type.__name__}."
        ) from exc


# -----------------------------------------------------------------------------
# Solr Configuration
# -----------------------------------------------------------------------------


class SolrConfig(BaseModel):
    """Connection settings for the Solr core holding archived email."""

    base_url: str = Field(
        default_factory=lambda: _env("SOLR_BASE_URL", "http://localhost:8983/solr"),
        description="Solr base URL, without the core name",
    )
    core: str = Field(
        default_factory=lambda: _env("SOLR_CORE", "emails"),
        description="Solr core (collection) name",
    )
    timeout_seconds: float = Field(
        default_factory=lambda: _env("SOLR_TIMEOUT_SECONDS", 30.0, float),
        gt=0.0,
        le=600.0,
        description="Per-request timeout",
    )
    commit_within_ms: int = Field(
        default_factory=lambda: _env("SOLR_COMMIT_WITHIN_MS", 0, int),
        ge=0,
        description="Soft commit window for indexing; 0 means explicit commit",
    )

    model_config = {"extra": "forbid"}

    @field_validator("base_url", "core")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @property
    def core_url(self) -> str:
        """Base URL joined with the core, e.g. http://host:8983/solr/emails."""
        return f"{self.base_url.rstrip('/')}/{self.core.lstrip('/')}"


# -----------------------------------------------------------------------------
# Search Configuration
# -----------------------------------------------------------------------------


class SearchConfig(BaseModel):
    """
    Search and result assembly configuration.

    Controls page defaults, facet bounds, and streaming batch behavior.
    """

    default_page_size: int = Field(
        default_factory=lambda: _env("DEFAULT_PAGE_SIZE", 100, int),
        ge=1,
        le=10000,
        description="Page size used when a caller does not pass one",
    )
    facet_limit: int = Field(
        default_factory=lambda: _env("FACET_LIMIT", 100, int),
        ge=1,
        le=10000,
        description="Maximum distinct values returned per field facet",
    )
    facet_min_count: int = Field(
        default_factory=lambda: _env("FACET_MIN_COUNT", 1, int),
        ge=1,
        description="Minimum count for a facet value to be returned",
    )
    stream_batch_size: int = Field(
        default_factory=lambda: _env("STREAM_BATCH_SIZE", 100, int),
        ge=1,
        le=10000,
        description="Rows fetched per streaming batch",
    )
    stream_prefetch: int = Field(
        default_factory=lambda: _env("STREAM_PREFETCH", 0, int),
        ge=0,
        le=16,
        description="Batches fetched ahead while streaming (0 = sequential)",
    )

    model_config = {"extra": "forbid"}


# -----------------------------------------------------------------------------
# System Configuration
# -----------------------------------------------------------------------------


class SystemConfig(BaseModel):
    """System-level configuration."""

    log_level: str = Field(
        default_factory=lambda: _env("LOG_LEVEL", "INFO"), description="Logging level"
    )
    log_format: Literal["console", "json"] = Field(
        default_factory=lambda: _env("LOG_FORMAT", "console"),
        description="Log renderer",
    )

    model_config = {"extra": "forbid"}

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        normalized = str(value).strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return normalized
