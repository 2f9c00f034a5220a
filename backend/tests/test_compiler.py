"""
Unit tests for the query compiler.
"""

from datetime import datetime, timedelta, timezone

import pytest
from conftest import T0, T1
from mailsearch.retrieval.compiler import (
    MATCH_ALL,
    FilterExpression,
    ParticipantClause,
    compile_criteria,
    escape_query_chars,
    map_sort_field,
)
from mailsearch.retrieval.criteria import SearchCriteria, SortSpec
from mailsearch.retrieval.visibility import SameDomainBccPolicy

TIME_FILTER = "sent_at:[2025-01-01T00:00:00Z TO 2025-01-31T23:59:59Z]"


def _criteria(**overrides):
    base = {"start": T0, "end": T1, "admin_firm_domain": "acme.com"}
    base.update(overrides)
    return SearchCriteria(**base)


class TestEscapeQueryChars:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("alice@acme.com", "alice@acme.com"),
            ("o'brien+tag@acme.com", "o'brien\\+tag@acme.com"),
            ('a"b', 'a\\"b'),
            ("a b", "a\\ b"),
            ("x:y/z", "x\\:y\\/z"),
            ("(*?)", "\\(\\*\\?\\)"),
            ("a\\b", "a\\\\b"),
        ],
    )
    def test_escape(self, raw, expected):
        assert escape_query_chars(raw) == expected


class TestMapSortField:
    def test_timestamp_alias(self):
        assert map_sort_field("timestamp") == "sent_at"
        assert map_sort_field("TimeStamp") == "sent_at"

    def test_unknown_passes_through(self):
        assert map_sort_field("subject") == "subject"


class TestCompileCriteria:
    def test_time_filter_only(self):
        expr = compile_criteria(_criteria())
        assert expr.query == MATCH_ALL
        assert expr.filter_queries() == [TIME_FILTER]
        assert expr.participant_filter is None
        assert expr.sort_clause() is None

    def test_naive_bounds_taken_as_utc(self):
        expr = compile_criteria(
            _criteria(start=datetime(2025, 1, 1), end=datetime(2025, 1, 31, 23, 59, 59))
        )
        assert expr.time_filter == TIME_FILTER

    def test_offset_bounds_converted_to_utc(self):
        est = timezone(timedelta(hours=-5))
        expr = compile_criteria(
            _criteria(
                start=datetime(2025, 1, 1, 0, 0, tzinfo=est),
                end=datetime(2025, 1, 1, 1, 0, tzinfo=est),
            )
        )
        assert expr.time_filter == "sent_at:[2025-01-01T05:00:00Z TO 2025-01-01T06:00:00Z]"

    def test_query_passed_through_verbatim(self):
        expr = compile_criteria(_criteria(query="subject:(budget AND q3)"))
        assert expr.query == "subject:(budget AND q3)"

    def test_blank_query_matches_all(self):
        assert compile_criteria(_criteria(query="   ")).query == MATCH_ALL

    def test_participant_with_bcc(self):
        expr = compile_criteria(_criteria(participant_emails=["Alice@Acme.com "]))
        assert expr.participant_filter == (
            '(from_addr:"alice@acme.com" OR to_addr:"alice@acme.com" '
            'OR cc_addr:"alice@acme.com" OR bcc_addr:"alice@acme.com")'
        )

    def test_participant_without_firm_domain_excludes_bcc(self):
        expr = compile_criteria(
            _criteria(participant_emails=["alice@acme.com"], admin_firm_domain="")
        )
        assert "bcc_addr" not in expr.participant_filter
        assert expr.participant_clauses[0].fields == ("from_addr", "to_addr", "cc_addr")

    def test_participants_or_combined_in_input_order(self):
        expr = compile_criteria(
            _criteria(participant_emails=["b@x.org", "a@acme.com"]),
            SameDomainBccPolicy(),
        )
        assert expr.participant_filter == (
            '(from_addr:"b@x.org" OR to_addr:"b@x.org" OR cc_addr:"b@x.org")'
            ' OR '
            '(from_addr:"a@acme.com" OR to_addr:"a@acme.com" '
            'OR cc_addr:"a@acme.com" OR bcc_addr:"a@acme.com")'
        )
        assert expr.filter_queries() == [TIME_FILTER, expr.participant_filter]

    def test_blank_participants_ignored(self):
        expr = compile_criteria(_criteria(participant_emails=["", "  "]))
        assert expr.participant_clauses == ()
        assert expr.filter_queries() == [TIME_FILTER]

    def test_participant_reserved_chars_escaped(self):
        expr = compile_criteria(_criteria(participant_emails=["a+b@acme.com"]))
        assert 'from_addr:"a\\+b@acme.com"' in expr.participant_filter

    @pytest.mark.parametrize(
        "sort,expected",
        [
            ("timestamp desc", "sent_at desc"),
            ("timestamp", "sent_at asc"),
            ("subject ASC", "subject asc"),
        ],
    )
    def test_sort(self, sort, expected):
        assert compile_criteria(_criteria(sort=sort)).sort_clause() == expected

    def test_deterministic(self):
        c = _criteria(
            query="subject:budget",
            participant_emails=["alice@acme.com", "bob@x.org"],
            sort="timestamp desc",
        )
        first = compile_criteria(c)
        second = compile_criteria(c)
        assert first == second
        assert first.render() == second.render()

    def test_render(self):
        expr = compile_criteria(_criteria(sort="timestamp desc"))
        assert expr.render() == f"q=*:* & fq={TIME_FILTER} & sort=sent_at desc"


class TestFilterExpression:
    def test_millisecond_timestamps(self):
        expr = FilterExpression(
            start=datetime(2025, 1, 1, 0, 0, 0, 250000, tzinfo=timezone.utc),
            end=T1,
        )
        assert expr.time_filter.startswith("sent_at:[2025-01-01T00:00:00.250Z TO ")

    def test_sort_clause(self):
        expr = FilterExpression(start=T0, end=T1, sort=SortSpec(field="sent_at", direction="desc"))
        assert expr.sort_clause() == "sent_at desc"

    def test_participant_clause_render(self):
        clause = ParticipantClause(address="a@acme.com", fields=("from_addr", "to_addr"))
        assert clause.render() == '(from_addr:"a@acme.com" OR to_addr:"a@acme.com")'
