"""
Retrieval module for Mail Search.

Criteria, BCC visibility, query compilation, facets and streaming.
"""

from mailsearch.retrieval.compiler import (
    FilterExpression,
    compile_criteria,
    escape_query_chars,
)
from mailsearch.retrieval.criteria import SearchCriteria, SortSpec, parse_sort
from mailsearch.retrieval.engine import (
    EngineResponse,
    FacetSpec,
    SearchEngineAdapter,
    SolrEngineAdapter,
)
from mailsearch.retrieval.facets import aggregate_facets, build_facet_spec
from mailsearch.retrieval.orchestrator import EmailSearchService
from mailsearch.retrieval.visibility import (
    FirmContextBccPolicy,
    SameDomainBccPolicy,
    VisibilityPolicy,
)

__all__ = [
    # Criteria
    "SearchCriteria",
    "SortSpec",
    "parse_sort",
    # Visibility
    "VisibilityPolicy",
    "FirmContextBccPolicy",
    "SameDomainBccPolicy",
    # Compilation
    "FilterExpression",
    "compile_criteria",
    "escape_query_chars",
    # Engine
    "EngineResponse",
    "FacetSpec",
    "SearchEngineAdapter",
    "SolrEngineAdapter",
    # Facets
    "aggregate_facets",
    "build_facet_spec",
    # Service
    "EmailSearchService",
]
