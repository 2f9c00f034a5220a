"""
Search engine adapter.

``SearchEngineAdapter`` is the seam the orchestrator talks to;
``SolrEngineAdapter`` implements it against Solr's JSON ``/select`` handler.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from mailsearch.common.exceptions import EngineFailure
from mailsearch.config.models import SolrConfig
from mailsearch.retrieval.compiler import FilterExpression

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FacetSpec:
    """Facet request sent alongside the main query."""

    fields: tuple[str, ...] = ()
    queries: tuple[str, ...] = ()
    limit: int = 100
    min_count: int = 1

    def is_empty(self) -> bool:
        return not self.fields and not self.queries


@dataclass
class EngineResponse:
    """
    Raw engine answer.

    ``facet_fields`` maps field -> ordered (value, count) pairs;
    ``facet_queries`` maps facet query text -> count.
    """

    documents: list[dict[str, Any]] = field(default_factory=list)
    total_matched: int = 0
    facet_fields: dict[str, list[tuple[str, int]]] = field(default_factory=dict)
    facet_queries: dict[str, int] = field(default_factory=dict)


class SearchEngineAdapter(Protocol):
    """Anything that can execute a compiled expression."""

    def submit(
        self,
        expression: FilterExpression,
        rows: int,
        start: int,
        facets: FacetSpec | None = None,
    ) -> EngineResponse:
        ...


def _pairs(flat: Sequence[Any]) -> list[tuple[str, int]]:
    """Solr's flat [value, count, value, count, ...] list -> pairs."""
    return [
        (str(flat[i]), int(flat[i + 1])) for i in range(0, len(flat) - 1, 2)
    ]


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:500] or response.reason_phrase
    error = payload.get("error") if isinstance(payload, Mapping) else None
    if isinstance(error, Mapping) and error.get("msg"):
        return str(error["msg"])
    return response.reason_phrase


def build_select_params(
    expression: FilterExpression,
    rows: int,
    start: int,
    facets: FacetSpec | None = None,
) -> dict[str, Any]:
    """Form parameters for Solr's /select handler."""
    params: dict[str, Any] = {
        "q": expression.query,
        "fq": expression.filter_queries(),
        "rows": rows,
        "start": start,
        "wt": "json",
    }
    sort = expression.sort_clause()
    if sort:
        params["sort"] = sort
    if facets is not None and not facets.is_empty():
        params["facet"] = "true"
        params["facet.mincount"] = facets.min_count
        params["facet.limit"] = facets.limit
        if facets.fields:
            params["facet.field"] = list(facets.fields)
        if facets.queries:
            params["facet.query"] = list(facets.queries)
    return params


def parse_select_response(payload: Mapping[str, Any]) -> EngineResponse:
    """Parse a /select JSON body into an EngineResponse."""
    body = payload.get("response") or {}
    counts = payload.get("facet_counts") or {}
    facet_fields = {
        name: _pairs(values or [])
        for name, values in (counts.get("facet_fields") or {}).items()
    }
    facet_queries = {
        str(query): int(count)
        for query, count in (counts.get("facet_queries") or {}).items()
    }
    return EngineResponse(
        documents=list(body.get("docs") or []),
        total_matched=int(body.get("numFound") or 0),
        facet_fields=facet_fields,
        facet_queries=facet_queries,
    )


class SolrEngineAdapter:
    """
    Solr adapter over httpx.

    Timeouts come from ``SolrConfig``; the core itself defines none.
    """

    def __init__(
        self,
        config: SolrConfig | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config or SolrConfig()
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=self._config.timeout_seconds)
        logger.info("SolrEngineAdapter initialized (core: %s)", self.core_url)

    @property
    def core_url(self) -> str:
        return self._config.core_url

    def submit(
        self,
        expression: FilterExpression,
        rows: int,
        start: int,
        facets: FacetSpec | None = None,
    ) -> EngineResponse:
        params = build_select_params(expression, rows, start, facets)
        payload = self._post("select", data=params)
        return parse_select_response(payload)

    def update(self, documents: list[dict[str, Any]], commit_within_ms: int = 0) -> None:
        """Add documents; commits explicitly unless a commit window is set."""
        params: dict[str, Any] = {"wt": "json"}
        if commit_within_ms > 0:
            params["commitWithin"] = commit_within_ms
        else:
            params["commit"] = "true"
        self._post("update", json=documents, params=params)

    def _post(self, handler: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.core_url}/{handler}"
        try:
            resp = self.client.post(url, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            raise EngineFailure(
                f"Solr {handler} failed: {message}",
                error_code="ENGINE_REJECTED",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise EngineFailure(
                f"Solr {handler} unreachable: {e}",
                error_code="ENGINE_UNAVAILABLE",
                retryable=True,
            ) from e

        try:
            return resp.json()
        except ValueError as e:
            raise EngineFailure(
                f"Solr {handler} returned a non-JSON body",
                error_code="ENGINE_BAD_RESPONSE",
                status_code=resp.status_code,
            ) from e

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> SolrEngineAdapter:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
