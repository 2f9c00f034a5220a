"""
Configuration loader for Mail Search.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from mailsearch.common.exceptions import ConfigurationError

from .models import SearchConfig, SolrConfig, SystemConfig

load_dotenv()


logger = logging.getLogger(__name__)


class MailSearchConfig(BaseModel):
    """
    Centralized configuration for Mail Search.

    All sub-configs are Pydantic models with validation.
    """

    solr: SolrConfig = Field(default_factory=SolrConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    model_config = {"extra": "forbid"}

    def save(self, path: Path) -> None:
        """Save the configuration to a file."""
        with path.open("w") as f:
            f.write(self.model_dump_json(indent=2))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return self.model_dump()

    @classmethod
    def load(cls, path: Path | None = None) -> MailSearchConfig:
        """
        Load the configuration.

        If path is None, creates config from environment variables.
        If path is provided, loads from JSON file; missing sections fall back
        to environment values.
        """
        if path is None:
            try:
                return cls()
            except (PydanticValidationError, ValueError) as e:
                raise ConfigurationError(
                    f"Configuration error: {e}\n\n"
                    "Please ensure MAILSEARCH_* environment variables hold valid values.",
                    error_code="CONFIG_INVALID",
                ) from e

        if not path.exists():
            logger.info("No configuration file at %s; using environment", path)
            return cls.load()

        try:
            with path.open("r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Configuration file {path} is not valid JSON: {e}",
                error_code="CONFIG_CORRUPT",
                file_path=str(path),
            ) from e

        try:
            return cls.model_validate(data)
        except (PydanticValidationError, ValueError) as e:
            raise ConfigurationError(
                f"Configuration file {path} failed validation: {e}",
                error_code="CONFIG_INVALID",
                file_path=str(path),
            ) from e


_config: MailSearchConfig | None = None
_config_lock = threading.RLock()


def get_config() -> MailSearchConfig:
    """
    Get the global configuration instance (thread-safe singleton pattern).

    Uses double-checked locking so initialization happens once.
    """
    global _config

    if _config is not None:
        return _config

    with _config_lock:
        if _config is None:
            _config = MailSearchConfig.load()
        return _config


def reset_config() -> None:
    """Reset the global configuration instance (mainly for testing)."""
    global _config
    with _config_lock:
        _config = None


def set_config(config: MailSearchConfig) -> None:
    """Set the global configuration instance (mainly for testing)."""
    global _config
    with _config_lock:
        _config = config
