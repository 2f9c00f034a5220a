"""
MailSearchError hierarchy.

Provides specific, actionable exception types with context preservation
and programmatic error handling support.
"""

from __future__ import annotations

from typing import Any

SENSITIVE_CONTEXT_KEYS = {"query", "participant", "participants", "raw_response"}
REDACTED_VALUE = "[REDACTED]"


def _redact_context(context: dict[str, Any]) -> dict[str, Any]:
    redacted: dict[str, Any] = {}
    for key, value in context.items():
        if isinstance(key, str) and key.lower() in SENSITIVE_CONTEXT_KEYS:
            redacted[key] = REDACTED_VALUE
        else:
            redacted[key] = value
    return redacted


def _pop_duplicate_kwargs(kwargs: dict[str, Any], keys: tuple[str, ...]) -> None:
    for key in keys:
        kwargs.pop(key, None)


class MailSearchError(Exception):
    """
    Base class for all application errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code (e.g., "ENGINE_REJECTED")
        context: Additional context dict for debugging
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = dict(context) if context is not None else {}
        if kwargs:
            self.context.update(kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/reporting."""
        safe_context = _redact_context(dict(self.context)) if self.context else {}
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": safe_context,
        }


class ConfigurationError(MailSearchError):
    """Configuration issues: missing/invalid settings."""


class ValidationError(MailSearchError):
    """
    Malformed search criteria.

    Raised before any engine interaction; the caller recovers by fixing input.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        rule: str | None = None,
        **kwargs: Any,
    ) -> None:
        _pop_duplicate_kwargs(kwargs, ("field", "rule"))
        super().__init__(message, field=field, rule=rule, **kwargs)
        self.field = field
        self.rule = rule


class EngineFailure(MailSearchError):
    """
    The search engine rejected or could not serve a request.

    ``status_code`` is set when the engine answered with an HTTP error;
    ``retryable`` marks transport-level failures.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = False,
        **kwargs: Any,
    ) -> None:
        _pop_duplicate_kwargs(kwargs, ("status_code", "retryable"))
        super().__init__(
            message, status_code=status_code, retryable=retryable, **kwargs
        )
        self.status_code = status_code
        self.retryable = retryable

    @property
    def is_rejection(self) -> bool:
        """True when the engine refused the request itself (4xx)."""
        return self.status_code is not None and 400 <= self.status_code < 500


class StreamFailure(MailSearchError):
    """
    A batch fetch failed while streaming.

    Documents emitted before the failing batch remain valid.
    """

    def __init__(
        self,
        message: str,
        batch_index: int | None = None,
        **kwargs: Any,
    ) -> None:
        _pop_duplicate_kwargs(kwargs, ("batch_index",))
        super().__init__(message, batch_index=batch_index, **kwargs)
        self.batch_index = batch_index


class IndexingError(MailSearchError):
    """
    Writing documents to the engine failed.
    """

    def __init__(
        self,
        message: str,
        document_count: int = 0,
        **kwargs: Any,
    ) -> None:
        _pop_duplicate_kwargs(kwargs, ("document_count",))
        super().__init__(message, document_count=document_count, **kwargs)
        self.document_count = document_count
