"""
Email search service.

Facade over the compiler, facet aggregator and streaming engine. Holds no
state between calls beyond its collaborators.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from mailsearch.common.exceptions import EngineFailure, ValidationError
from mailsearch.config.models import SearchConfig
from mailsearch.domain.models import EmailDocument, FacetResult, SearchOutcome
from mailsearch.retrieval.compiler import FilterExpression, compile_criteria
from mailsearch.retrieval.criteria import SearchCriteria
from mailsearch.retrieval.engine import EngineResponse, SearchEngineAdapter
from mailsearch.retrieval.facets import aggregate_facets, build_facet_spec
from mailsearch.retrieval.pagination import batch_count, stream_batches
from mailsearch.retrieval.visibility import DEFAULT_POLICY, VisibilityPolicy

logger = logging.getLogger(__name__)


class EmailSearchService:
    """
    Search archived email with BCC visibility enforced by ``policy``.

    Count, search and stream all go through ``compile`` so they see the
    same predicates.
    """

    def __init__(
        self,
        engine: SearchEngineAdapter,
        policy: VisibilityPolicy = DEFAULT_POLICY,
        settings: SearchConfig | None = None,
    ) -> None:
        self.engine = engine
        self.policy = policy
        self.settings = settings or SearchConfig()

    def compile(self, criteria: SearchCriteria) -> FilterExpression:
        return compile_criteria(criteria, self.policy)

    def hit_count(self, criteria: SearchCriteria) -> int:
        """Total matches for the criteria, independent of paging."""
        expression = self.compile(criteria)
        response = self.engine.submit(expression, rows=0, start=0)
        return response.total_matched

    def search_documents(self, criteria: SearchCriteria) -> list[EmailDocument]:
        """One page of documents, no facets."""
        response = self._fetch_page(self.compile(criteria), criteria)
        return [EmailDocument.from_engine_fields(d) for d in response.documents]

    def search(self, criteria: SearchCriteria) -> SearchOutcome:
        """
        One page of documents with total count and any requested facets.

        If the engine rejects the faceted request it is re-issued once without
        facets and the outcome carries an empty facet map.
        """
        expression = self.compile(criteria)
        facet_spec = build_facet_spec(
            criteria,
            limit=self.settings.facet_limit,
            min_count=self.settings.facet_min_count,
        )
        logger.debug(
            "Search page=%d size=%d facets=%s",
            criteria.page,
            criteria.size,
            facet_spec is not None,
        )

        facets: dict[str, FacetResult] = {}
        if facet_spec is None:
            response = self._fetch_page(expression, criteria)
        else:
            try:
                response = self.engine.submit(
                    expression,
                    rows=criteria.size,
                    start=criteria.offset,
                    facets=facet_spec,
                )
            except EngineFailure as e:
                logger.warning(
                    "Faceted query %s, retrying without facets: %s",
                    "rejected" if e.is_rejection else "failed",
                    e.message,
                )
                response = self._fetch_page(expression, criteria)
            else:
                facets = aggregate_facets(criteria, response)

        return SearchOutcome(
            documents=[EmailDocument.from_engine_fields(d) for d in response.documents],
            total_count=response.total_matched,
            page=criteria.page,
            size=criteria.size,
            facets=facets,
        )

    def stream(
        self,
        criteria: SearchCriteria,
        batch_size: int | None = None,
        prefetch: int | None = None,
    ) -> Iterator[EmailDocument]:
        """
        Every matching document, fetched in ``batch_size`` pages.

        The returned generator is lazy and single-use; the hit count is taken
        when iteration starts. A non-positive ``batch_size`` fails here.
        """
        if batch_size is None:
            batch_size = self.settings.stream_batch_size
        if batch_size <= 0:
            raise ValidationError(
                "batch_size must be > 0", field="batch_size", rule="min"
            )
        if prefetch is None:
            prefetch = self.settings.stream_prefetch
        return self._stream(criteria, batch_size, prefetch)

    def _stream(
        self, criteria: SearchCriteria, batch_size: int, prefetch: int
    ) -> Iterator[EmailDocument]:
        total = self.hit_count(criteria)
        batches = batch_count(total, batch_size)
        logger.debug("Streaming %d hit(s) in %d batch(es)", total, batches)

        def fetch_batch(index: int) -> list[EmailDocument]:
            return self.search_documents(criteria.with_page(index, batch_size))

        yield from stream_batches(fetch_batch, batches, prefetch=prefetch)

    def _fetch_page(
        self, expression: FilterExpression, criteria: SearchCriteria
    ) -> EngineResponse:
        return self.engine.submit(
            expression, rows=criteria.size, start=criteria.offset
        )
