"""Tests for record store filter expressions."""

from __future__ import annotations

from datetime import datetime, timezone

from call_scheduler.db.filters import And, Eq, Lt, Lte, Or


NOON = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


class TestFormulaRendering:
    """Filters render to Airtable filterByFormula strings."""

    def test_eq_string(self):
        assert Eq("status", "pending").to_formula() == "{status}='pending'"

    def test_eq_escapes_quotes(self):
        assert Eq("call_id", "a'b").to_formula() == "{call_id}='a\\'b'"

    def test_eq_none_is_blank(self):
        assert Eq("call_id", None).to_formula() == "{call_id}=BLANK()"

    def test_lte_timestamp(self):
        formula = Lte("scheduled_time", NOON).to_formula()

        assert formula == (
            "AND({scheduled_time}, NOT(IS_AFTER({scheduled_time}, "
            "DATETIME_PARSE('2025-03-14T12:00:00.000Z'))))"
        )

    def test_lt_timestamp(self):
        formula = Lt("claimed_at", NOON).to_formula()

        assert "IS_BEFORE({claimed_at}" in formula
        assert formula.startswith("AND({claimed_at}, ")

    def test_and_or_nesting(self):
        expr = Or(And(Eq("a", "1"), Eq("b", "2")), Eq("c", "3"))

        assert expr.to_formula() == "OR(AND({a}='1', {b}='2'), {c}='3')"

    def test_single_child_and_is_unwrapped(self):
        assert And(Eq("a", "1")).to_formula() == "{a}='1'"


class TestInMemoryMatching:
    """Filters evaluate against field dicts the same way."""

    def test_eq_matches(self):
        assert Eq("status", "pending").matches({"status": "pending"})
        assert not Eq("status", "pending").matches({"status": "executing"})
        assert not Eq("status", "pending").matches({})

    def test_eq_none_matches_missing_and_empty(self):
        assert Eq("call_id", None).matches({})
        assert Eq("call_id", None).matches({"call_id": ""})
        assert not Eq("call_id", None).matches({"call_id": "abc"})

    def test_lte_boundary_is_inclusive(self):
        assert Lte("t", NOON).matches({"t": "2025-03-14T12:00:00Z"})
        assert Lte("t", NOON).matches({"t": "2025-03-14T11:59:59Z"})
        assert not Lte("t", NOON).matches({"t": "2025-03-14T12:00:01Z"})

    def test_lt_boundary_is_exclusive(self):
        assert not Lt("t", NOON).matches({"t": "2025-03-14T12:00:00Z"})
        assert Lt("t", NOON).matches({"t": "2025-03-14T11:59:59Z"})

    def test_offsets_are_normalised(self):
        # 13:00 at +01:00 is noon UTC
        assert Lte("t", NOON).matches({"t": "2025-03-14T13:00:00+01:00"})
        assert not Lte("t", NOON).matches({"t": "2025-03-14T13:00:01+01:00"})

    def test_missing_or_garbage_timestamp_never_matches(self):
        assert not Lte("t", NOON).matches({})
        assert not Lte("t", NOON).matches({"t": "tomorrow"})
        assert not Lt("t", NOON).matches({"t": ""})

    def test_operators_combine(self):
        expr = Eq("status", "pending") & Lte("t", NOON)

        assert expr.matches({"status": "pending", "t": "2025-03-14T10:00:00Z"})
        assert not expr.matches({"status": "failed", "t": "2025-03-14T10:00:00Z"})
        assert (Eq("a", 1) | Eq("b", 2)).matches({"b": 2})
