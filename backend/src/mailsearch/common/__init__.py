"""Shared error types."""

from mailsearch.common.exceptions import (
    ConfigurationError,
    EngineFailure,
    IndexingError,
    MailSearchError,
    StreamFailure,
    ValidationError,
)

__all__ = [
    "ConfigurationError",
    "EngineFailure",
    "IndexingError",
    "MailSearchError",
    "StreamFailure",
    "ValidationError",
]
