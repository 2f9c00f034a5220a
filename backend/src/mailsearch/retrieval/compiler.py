"""
Query compiler.

Turns ``SearchCriteria`` plus a ``VisibilityPolicy`` into a ``FilterExpression``
in Solr's standard query syntax:

- time filter, always:  sent_at:[2025-01-01T00:00:00Z TO 2025-01-31T23:59:59Z]
- participant filter:   (from_addr:"a@x.com" OR to_addr:"a@x.com" ...) OR (...)
- free text:            passed through verbatim, ``*:*`` when blank
- sort:                 "<field> asc|desc" with friendly aliases mapped

The same criteria always compile to an equal expression, and count, search and
streaming share it so their results agree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from mailsearch.domain.models import FIELD_SENT_AT, format_timestamp, to_utc
from mailsearch.retrieval.criteria import SearchCriteria, SortSpec
from mailsearch.retrieval.visibility import DEFAULT_POLICY, VisibilityPolicy

MATCH_ALL = "*:*"

# Friendly sort names -> stored field names
SORT_FIELD_ALIASES = {
    "timestamp": FIELD_SENT_AT,
}

# Characters escaped by SolrJ's ClientUtils.escapeQueryChars
_RESERVED_CHARS = frozenset('\\+-!():^[]"{}~*?|&;/')


def escape_query_chars(text: str) -> str:
    """Backslash-escape Solr reserved characters and whitespace."""
    out: list[str] = []
    for ch in text:
        if ch in _RESERVED_CHARS or ch.isspace():
            out.append("\\")
        out.append(ch)
    return "".join(out)


def map_sort_field(name: str) -> str:
    """Resolve a sort alias; unknown names pass through unchanged."""
    return SORT_FIELD_ALIASES.get(name.lower(), name)


@dataclass(frozen=True)
class ParticipantClause:
    """One participant matched against the fields the policy allows."""

    address: str
    fields: tuple[str, ...]

    def render(self) -> str:
        term = escape_query_chars(self.address)
        return "(" + " OR ".join(f'{f}:"{term}"' for f in self.fields) + ")"


@dataclass(frozen=True)
class FilterExpression:
    """
    Compiled search predicates.

    Carries both the rendered Solr strings and the structured pieces
    (bounds, participant clauses) they were rendered from.
    """

    start: datetime
    end: datetime
    query: str = MATCH_ALL
    participant_clauses: tuple[ParticipantClause, ...] = ()
    sort: SortSpec | None = None
    time_filter: str = field(init=False)
    participant_filter: str | None = field(init=False)

    def __post_init__(self) -> None:
        time_filter = (
            f"{FIELD_SENT_AT}:[{format_timestamp(self.start)} "
            f"TO {format_timestamp(self.end)}]"
        )
        object.__setattr__(self, "time_filter", time_filter)
        participant_filter = None
        if self.participant_clauses:
            participant_filter = " OR ".join(
                clause.render() for clause in self.participant_clauses
            )
        object.__setattr__(self, "participant_filter", participant_filter)

    def filter_queries(self) -> list[str]:
        """Filter queries in order; each is ANDed with the main query."""
        fqs = [self.time_filter]
        if self.participant_filter:
            fqs.append(self.participant_filter)
        return fqs

    def sort_clause(self) -> str | None:
        if self.sort is None:
            return None
        return f"{self.sort.field} {self.sort.direction}"

    def render(self) -> str:
        """Single-line form for logs and equality checks in tests."""
        parts = [f"q={self.query}"] + [f"fq={fq}" for fq in self.filter_queries()]
        sort = self.sort_clause()
        if sort:
            parts.append(f"sort={sort}")
        return " & ".join(parts)


def compile_criteria(
    criteria: SearchCriteria, policy: VisibilityPolicy = DEFAULT_POLICY
) -> FilterExpression:
    """Compile criteria into engine predicates."""
    clauses = tuple(
        ParticipantClause(
            address=participant.strip().lower(),
            fields=policy.eligible_fields(participant, criteria.admin_firm_domain),
        )
        for participant in criteria.participants()
    )

    sort = criteria.sort_spec()
    if sort is not None:
        sort = SortSpec(field=map_sort_field(sort.field), direction=sort.direction)

    return FilterExpression(
        start=to_utc(criteria.start),
        end=to_utc(criteria.end),
        query=criteria.query_text() or MATCH_ALL,
        participant_clauses=clauses,
        sort=sort,
    )
