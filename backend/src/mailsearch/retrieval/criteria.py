"""
Search criteria.

Every search must carry a time range and the admin's firm domain. The query
text, participant addresses, facets and sort are optional. Construction fails
fast on invalid input so no engine query is ever built from bad criteria.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    ModelWrapValidatorHandler,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from mailsearch.common.exceptions import ValidationError
from mailsearch.domain.models import FacetQueryDefinition, to_utc

DEFAULT_PAGE_SIZE = 100

SortDirection = Literal["asc", "desc"]


class SortSpec(BaseModel):
    """Parsed ``"<field> [asc|desc]"`` sort clause (field not yet aliased)."""

    model_config = ConfigDict(frozen=True)

    field: str
    direction: SortDirection = "asc"


def parse_sort(raw: str | None) -> SortSpec | None:
    """
    Parse a sort string.

    Direction defaults to ascending; anything other than asc/desc
    (case-insensitive) is rejected.
    """
    if raw is None or not raw.strip():
        return None
    parts = raw.split()
    if len(parts) > 2:
        raise ValidationError(
            f"sort must be '<field> [asc|desc]', got {raw!r}",
            field="sort",
            rule="format",
        )
    direction = parts[1].lower() if len(parts) == 2 else "asc"
    if direction not in ("asc", "desc"):
        raise ValidationError(
            f"sort direction must be 'asc' or 'desc', got {parts[1]!r}",
            field="sort",
            rule="direction",
        )
    return SortSpec(field=parts[0], direction=direction)


class SearchCriteria(BaseModel):
    """
    Immutable, validated search request.

    Naive datetimes are treated as UTC. Use ``with_page`` to derive the
    criteria for another page or batch size.
    """

    model_config = ConfigDict(frozen=True)

    start: datetime | None = None
    end: datetime | None = None
    query: str | None = None
    participant_emails: tuple[str, ...] = ()
    admin_firm_domain: str | None = None
    page: int = 0
    size: int = DEFAULT_PAGE_SIZE
    facet_fields: tuple[str, ...] = ()
    facet_queries: tuple[FacetQueryDefinition, ...] = ()
    sort: str | None = None

    @field_validator("participant_emails", "facet_fields", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(v for v in value if v is not None)
        return value

    @field_validator("facet_queries", mode="before")
    @classmethod
    def _coerce_facet_queries(cls, value: Any) -> Any:
        if value is None:
            return ()
        definitions = []
        for item in value:
            if isinstance(item, FacetQueryDefinition):
                definitions.append(item)
                continue
            try:
                definitions.append(FacetQueryDefinition.model_validate(item))
            except PydanticValidationError as e:
                first = e.errors()[0]
                raise ValidationError(
                    f"Invalid facet query: {first['msg']}",
                    field="facet_queries." + ".".join(str(p) for p in first["loc"]),
                    rule=first["type"],
                ) from e
        return tuple(definitions)

    @model_validator(mode="wrap")
    @classmethod
    def _as_criteria_error(
        cls, data: Any, handler: ModelWrapValidatorHandler[SearchCriteria]
    ) -> SearchCriteria:
        try:
            return handler(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or None
            raise ValidationError(
                f"Invalid search criteria: {first['msg']}",
                field=field,
                rule=first["type"],
            ) from e

    @model_validator(mode="after")
    def _check_invariants(self) -> SearchCriteria:
        if self.start is None or self.end is None:
            raise ValidationError(
                "start and end must be provided", field="start", rule="required"
            )
        if to_utc(self.end) < to_utc(self.start):
            raise ValidationError("end must be >= start", field="end", rule="range")
        if self.page < 0:
            raise ValidationError("page must be >= 0", field="page", rule="min")
        if self.size <= 0:
            raise ValidationError("size must be > 0", field="size", rule="min")
        if self.admin_firm_domain is None:
            raise ValidationError(
                "admin_firm_domain must be provided",
                field="admin_firm_domain",
                rule="required",
            )
        parse_sort(self.sort)
        return self

    def query_text(self) -> str | None:
        """The free-text query, or None when blank."""
        if self.query is None or not self.query.strip():
            return None
        return self.query

    def participants(self) -> list[str]:
        """Participant addresses with blanks removed, order preserved."""
        return [p for p in self.participant_emails if p and p.strip()]

    def sort_spec(self) -> SortSpec | None:
        return parse_sort(self.sort)

    @property
    def offset(self) -> int:
        return self.page * self.size

    @property
    def has_facets(self) -> bool:
        return bool(self.facet_fields) or bool(self.facet_queries)

    def with_page(self, page: int, size: int | None = None) -> SearchCriteria:
        """Same filters, different page (and optionally page size)."""
        data = self.model_dump()
        data["page"] = page
        if size is not None:
            data["size"] = size
        return SearchCriteria(**data)
