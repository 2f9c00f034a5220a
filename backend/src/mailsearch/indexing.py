"""
Email indexer.

Writes ``EmailDocument``s to the engine's update handler. Participant
addresses are lower-cased on the way in so participant filters, which
lower-case their terms, match.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol

from mailsearch.common.exceptions import EngineFailure, IndexingError
from mailsearch.config.models import SolrConfig
from mailsearch.domain.models import EmailDocument

logger = logging.getLogger(__name__)


class DocumentWriter(Protocol):
    def update(self, documents: list[dict[str, Any]], commit_within_ms: int = 0) -> None:
        ...


class EmailIndexer:
    """Indexes archived email through a ``DocumentWriter`` (e.g. SolrEngineAdapter)."""

    def __init__(self, writer: DocumentWriter, config: SolrConfig | None = None):
        self.writer = writer
        self.commit_within_ms = (config or SolrConfig()).commit_within_ms

    def index(self, email: EmailDocument) -> None:
        self.index_all([email])

    def index_all(self, emails: Iterable[EmailDocument]) -> int:
        """Index a batch; returns the number of documents written."""
        docs = [email.to_engine_fields() for email in emails]
        if not docs:
            return 0
        try:
            self.writer.update(docs, commit_within_ms=self.commit_within_ms)
        except EngineFailure as e:
            raise IndexingError(
                f"Failed to index emails: {e.message}",
                error_code="INDEX_WRITE_FAILED",
                document_count=len(docs),
            ) from e
        logger.info("Indexed %d email(s)", len(docs))
        return len(docs)
