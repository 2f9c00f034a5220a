from __future__ import annotations

import fnmatch
from collections import Counter
from datetime import datetime, timezone
from typing import Any

import pytest

from mailsearch.common.exceptions import EngineFailure
from mailsearch.config.loader import reset_config
from mailsearch.domain.models import (
    FIELD_BCC,
    FIELD_BODY,
    FIELD_CC,
    FIELD_FROM,
    FIELD_ID,
    FIELD_SENT_AT,
    FIELD_SUBJECT,
    FIELD_TO,
    EmailDocument,
)
from mailsearch.retrieval.compiler import MATCH_ALL, FilterExpression
from mailsearch.retrieval.engine import EngineResponse, FacetSpec

KNOWN_FIELDS = {
    FIELD_ID,
    FIELD_SUBJECT,
    FIELD_BODY,
    FIELD_FROM,
    FIELD_TO,
    FIELD_CC,
    FIELD_BCC,
    FIELD_SENT_AT,
}

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)
T1 = datetime(2025, 1, 31, 23, 59, 59, tzinfo=timezone.utc)


def _values(doc: dict[str, Any], field: str) -> list[str]:
    value = doc.get(field)
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value]
    return [str(value)]


def _parse(ts: str) -> datetime:
    return datetime.fromisoformat(ts.replace("Z", "+00:00"))


class InMemoryEngine:
    """
    Search engine double that evaluates FilterExpression structurally.

    The free-text and facet query language understood here is a small subset:
    ``*:*``, ``field:pattern`` with ``*`` wildcards, and a leading ``NOT``.
    Unknown fields are rejected the way Solr rejects them.
    """

    def __init__(self) -> None:
        self.docs: list[dict[str, Any]] = []
        self.calls: list[dict[str, Any]] = []
        self.fail_on_starts: set[int] = set()
        self.reject_facets = False

    # -- writer side ---------------------------------------------------------

    def update(self, documents: list[dict[str, Any]], commit_within_ms: int = 0) -> None:
        self.docs.extend(documents)

    def add(self, *emails: EmailDocument) -> None:
        self.update([email.to_engine_fields() for email in emails])

    # -- query side ----------------------------------------------------------

    def _match_query(self, doc: dict[str, Any], query: str) -> bool:
        query = query.strip()
        if query == MATCH_ALL:
            return True
        if query.upper().startswith("NOT "):
            return not self._match_query(doc, query[4:])
        field, sep, pattern = query.partition(":")
        if not sep or field not in KNOWN_FIELDS:
            raise EngineFailure(f"undefined field {field}", status_code=400)
        pattern = pattern.strip('"').lower()
        return any(fnmatch.fnmatchcase(v.lower(), pattern) for v in _values(doc, field))

    def _matches(self, doc: dict[str, Any], expression: FilterExpression) -> bool:
        sent = doc.get(FIELD_SENT_AT)
        if sent is None or not (expression.start <= _parse(sent) <= expression.end):
            return False
        if expression.participant_clauses and not any(
            clause.address in _values(doc, field)
            for clause in expression.participant_clauses
            for field in clause.fields
        ):
            return False
        return self._match_query(doc, expression.query)

    def submit(
        self,
        expression: FilterExpression,
        rows: int,
        start: int,
        facets: FacetSpec | None = None,
    ) -> EngineResponse:
        self.calls.append(
            {"expression": expression, "rows": rows, "start": start, "facets": facets}
        )
        if rows > 0 and start in self.fail_on_starts:
            raise EngineFailure("engine unavailable", status_code=503)
        if facets is not None:
            if self.reject_facets:
                raise EngineFailure("facet request rejected", status_code=400)
            for name in facets.fields:
                if name not in KNOWN_FIELDS:
                    raise EngineFailure(f"undefined field {name}", status_code=400)

        matched = [d for d in self.docs if self._matches(d, expression)]
        if expression.sort is not None:
            key = expression.sort.field
            matched.sort(
                key=lambda d: (_values(d, key) or [""])[0],
                reverse=expression.sort.direction == "desc",
            )

        response = EngineResponse(
            documents=matched[start : start + rows],
            total_matched=len(matched),
        )
        if facets is not None:
            for name in facets.fields:
                counts = Counter(v for d in matched for v in _values(d, name))
                ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
                response.facet_fields[name] = [
                    (value, count)
                    for value, count in ordered[: facets.limit]
                    if count >= facets.min_count
                ]
            for query in facets.queries:
                response.facet_queries[query] = sum(
                    1 for d in matched if self._match_query(d, query)
                )
        return response

    def __enter__(self) -> InMemoryEngine:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None


def make_email(
    id: str,
    sent_at: datetime = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc),
    sender: str = "bob@example.com",
    to: list[str] | None = None,
    cc: list[str] | None = None,
    bcc: list[str] | None = None,
    subject: str = "Quarterly numbers",
    body: str = "See attached.",
) -> EmailDocument:
    return EmailDocument(
        id=id,
        subject=subject,
        body=body,
        from_=sender,
        to=to or [],
        cc=cc or [],
        bcc=bcc or [],
        sent_at=sent_at,
    )


@pytest.fixture
def engine() -> InMemoryEngine:
    return InMemoryEngine()


@pytest.fixture(autouse=True)
def _isolated_config():
    """Each test builds configuration from its own environment."""
    reset_config()
    yield
    reset_config()
