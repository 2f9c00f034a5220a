"""
Logging setup with structlog.

Library modules log through ``logging.getLogger(__name__)``; this module
routes stdlib records through structlog's processors so CLI and library
output share one format.
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import Any

import structlog

from mailsearch.config.models import SystemConfig

__all__ = ("configure_logging", "get_logger")

_configured = False
_configure_lock = threading.Lock()


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(settings: SystemConfig | None = None, force: bool = False) -> None:
    """Configure structlog and the root stdlib logger once per process."""
    global _configured
    with _configure_lock:
        if _configured and not force:
            return
        settings = settings or SystemConfig()

        # ConsoleRenderer formats exceptions itself
        renderers: list[Any]
        if settings.log_format == "json":
            renderers = [
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ]
        else:
            renderers = [structlog.dev.ConsoleRenderer()]

        structlog.configure(
            processors=_shared_processors()
            + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        formatter = structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *renderers,
            ],
        )
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)

        root = logging.getLogger()
        root.handlers[:] = [handler]
        root.setLevel(settings.log_level)
        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
        _configured = True


def get_logger(name: str | None = None) -> Any:
    """Structured logger bound to ``name``."""
    return structlog.get_logger(name)
