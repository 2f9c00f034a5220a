"""
Domain models for archived email search.

Field names in ``FIELD_*`` are the stored-field contract with the search
engine and must match the ingestion pipeline.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    computed_field,
    field_validator,
)

from mailsearch.common.exceptions import ValidationError

FIELD_ID = "id"
FIELD_SUBJECT = "subject"
FIELD_BODY = "body"
FIELD_FROM = "from_addr"
FIELD_TO = "to_addr"
FIELD_CC = "cc_addr"
FIELD_BCC = "bcc_addr"
FIELD_SENT_AT = "sent_at"

PARTICIPANT_FIELDS = (FIELD_FROM, FIELD_TO, FIELD_CC, FIELD_BCC)


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Iterable):
        return [str(v) for v in value if v is not None]
    return [str(value)]


def _first(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return str(value[0]) if value else None
    return str(value)


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value).strip()
    if not text:
        return None
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def _lower_all(values: Iterable[str]) -> list[str]:
    return [v.strip().lower() for v in values if v and v.strip()]


class EmailDocument(BaseModel):
    """
    An archived email as stored in and returned by the search engine.

    ``from_`` is exposed as ``from`` when serialized.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    subject: str | None = None
    body: str | None = None
    from_: str | None = Field(default=None, alias="from")
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    sent_at: datetime | None = None

    @field_validator("id")
    @classmethod
    def _validate_id(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("id cannot be empty")
        return value

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def _coerce_recipients(cls, value: Any) -> list[str]:
        return _as_list(value)

    def to_engine_fields(self) -> dict[str, Any]:
        """
        Stored-field representation for indexing.

        Participant addresses are lower-cased and blank recipients dropped;
        unset scalar fields are omitted.
        """
        doc: dict[str, Any] = {FIELD_ID: self.id}
        if self.subject is not None:
            doc[FIELD_SUBJECT] = self.subject
        if self.body is not None:
            doc[FIELD_BODY] = self.body
        if self.from_ is not None and self.from_.strip():
            doc[FIELD_FROM] = self.from_.strip().lower()
        for field_name, values in (
            (FIELD_TO, self.to),
            (FIELD_CC, self.cc),
            (FIELD_BCC, self.bcc),
        ):
            lowered = _lower_all(values)
            if lowered:
                doc[field_name] = lowered
        if self.sent_at is not None:
            doc[FIELD_SENT_AT] = format_timestamp(self.sent_at)
        return doc

    @classmethod
    def from_engine_fields(cls, doc: Mapping[str, Any]) -> EmailDocument:
        """Factory from a stored engine document."""
        return cls(
            id=_first(doc.get(FIELD_ID)) or "",
            subject=_first(doc.get(FIELD_SUBJECT)),
            body=_first(doc.get(FIELD_BODY)),
            from_=_first(doc.get(FIELD_FROM)),
            to=_as_list(doc.get(FIELD_TO)),
            cc=_as_list(doc.get(FIELD_CC)),
            bcc=_as_list(doc.get(FIELD_BCC)),
            sent_at=_parse_timestamp(doc.get(FIELD_SENT_AT)),
        )


def to_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format as the engine's UTC timestamp, e.g. 2025-01-01T09:30:00Z."""
    utc = to_utc(value)
    text = utc.strftime("%Y-%m-%dT%H:%M:%S")
    if utc.microsecond:
        text += f".{utc.microsecond // 1000:03d}"
    return text + "Z"


class FacetQueryDefinition(BaseModel):
    """
    A labelled query facet, e.g. "External Emails" -> "NOT from_addr:*@acme.com".
    """

    model_config = ConfigDict(frozen=True)

    label: str
    query: str

    @field_validator("label", "query", mode="before")
    @classmethod
    def _not_blank(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(
                f"Facet query {info.field_name} cannot be null or blank",
                field=f"facet_queries.{info.field_name}",
                rule="not_blank",
            )
        return value


class FacetValue(BaseModel):
    """A single facet value with its count."""

    model_config = ConfigDict(frozen=True)

    value: str
    count: int = Field(ge=1)


class FacetResult(BaseModel):
    """Facet values for one field, or a single labelled query-facet entry."""

    model_config = ConfigDict(frozen=True)

    field: str
    values: list[FacetValue] = Field(default_factory=list)


class SearchOutcome(BaseModel):
    """One page of documents with counts and facets."""

    documents: list[EmailDocument] = Field(default_factory=list)
    total_count: int = 0
    page: int = 0
    size: int = Field(default=1, gt=0)
    facets: dict[str, FacetResult] = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.size)
