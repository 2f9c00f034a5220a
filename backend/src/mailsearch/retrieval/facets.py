"""
Facet request building and result merging.

Field facets become one ``FacetResult`` per field; query facets become a
single-entry ``FacetResult`` keyed by their label. Zero counts are dropped.
"""

from __future__ import annotations

from mailsearch.domain.models import FacetResult, FacetValue
from mailsearch.retrieval.criteria import SearchCriteria
from mailsearch.retrieval.engine import EngineResponse, FacetSpec

DEFAULT_FACET_LIMIT = 100
DEFAULT_FACET_MIN_COUNT = 1


def build_facet_spec(
    criteria: SearchCriteria,
    limit: int = DEFAULT_FACET_LIMIT,
    min_count: int = DEFAULT_FACET_MIN_COUNT,
) -> FacetSpec | None:
    """Facet request for the criteria, or None when no facets were asked for."""
    if not criteria.has_facets:
        return None
    return FacetSpec(
        fields=tuple(criteria.facet_fields),
        queries=tuple(fq.query for fq in criteria.facet_queries),
        limit=limit,
        min_count=min_count,
    )


def aggregate_facets(
    criteria: SearchCriteria, response: EngineResponse
) -> dict[str, FacetResult]:
    """
    Merge field and query facet counts into one map.

    Field facets keep the engine's value order. Query facets follow request
    order, so a repeated label keeps the last non-zero definition.
    """
    facets: dict[str, FacetResult] = {}

    for name in criteria.facet_fields:
        pairs = response.facet_fields.get(name)
        if not pairs:
            continue
        values = [FacetValue(value=value, count=count) for value, count in pairs if count > 0]
        if values:
            facets[name] = FacetResult(field=name, values=values)

    for definition in criteria.facet_queries:
        count = response.facet_queries.get(definition.query, 0)
        if count > 0:
            facets[definition.label] = FacetResult(
                field=definition.label,
                values=[FacetValue(value=definition.label, count=count)],
            )

    return facets
