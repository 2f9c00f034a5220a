"""
Domain Models Package.

Email documents, facet results and search outcomes.
"""

from mailsearch.domain.models import (
    FIELD_BCC,
    FIELD_BODY,
    FIELD_CC,
    FIELD_FROM,
    FIELD_ID,
    FIELD_SENT_AT,
    FIELD_SUBJECT,
    FIELD_TO,
    PARTICIPANT_FIELDS,
    EmailDocument,
    FacetQueryDefinition,
    FacetResult,
    FacetValue,
    SearchOutcome,
    format_timestamp,
    to_utc,
)

__all__ = [
    "FIELD_BCC",
    "FIELD_BODY",
    "FIELD_CC",
    "FIELD_FROM",
    "FIELD_ID",
    "FIELD_SENT_AT",
    "FIELD_SUBJECT",
    "FIELD_TO",
    "PARTICIPANT_FIELDS",
    "EmailDocument",
    "FacetQueryDefinition",
    "FacetResult",
    "FacetValue",
    "SearchOutcome",
    "format_timestamp",
    "to_utc",
]
