"""Filter expressions for record store queries.

A filter is a small expression tree that can be pushed down to the
store as an Airtable ``filterByFormula`` string, or evaluated against
a record's fields in memory. Both backends therefore share one
predicate definition.

Usage:
    due = And(Eq("status", "pending"), Lte("scheduled_time", now))
    due.to_formula()
    # "AND({status}='pending', AND({scheduled_time}, NOT(IS_AFTER(...))))"
    due.matches({"status": "pending", "scheduled_time": "2025-01-01T09:00:00Z"})
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from call_scheduler.core.clock import format_timestamp, parse_timestamp


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _field(name: str) -> str:
    return "{" + name + "}"


def _literal(value: Any) -> str:
    if value is None:
        return "BLANK()"
    if isinstance(value, bool):
        return "TRUE()" if value else "FALSE()"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, datetime):
        return _quote(format_timestamp(value))
    return _quote(str(value))


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == []


class Filter(ABC):
    """Base class for filter expressions."""

    @abstractmethod
    def to_formula(self) -> str:
        """Render as an Airtable formula."""

    @abstractmethod
    def matches(self, fields: dict[str, Any]) -> bool:
        """Evaluate against a record's fields."""

    def __and__(self, other: Filter) -> Filter:
        return And(self, other)

    def __or__(self, other: Filter) -> Filter:
        return Or(self, other)


@dataclass(frozen=True)
class Eq(Filter):
    """Field equals a value (None means the field is blank)."""

    field: str
    value: Any

    def to_formula(self) -> str:
        return f"{_field(self.field)}={_literal(self.value)}"

    def matches(self, fields: dict[str, Any]) -> bool:
        actual = fields.get(self.field)
        if self.value is None:
            return _is_blank(actual)
        return actual == self.value


@dataclass(frozen=True)
class _TimestampComparison(Filter):
    field: str
    value: datetime

    def _compare(self, actual: datetime, bound: datetime) -> bool:
        raise NotImplementedError

    def _formula_body(self, field_ref: str, bound: str) -> str:
        raise NotImplementedError

    def to_formula(self) -> str:
        field_ref = _field(self.field)
        bound = f"DATETIME_PARSE({_quote(format_timestamp(self.value))})"
        # Blank timestamps never match
        return f"AND({field_ref}, {self._formula_body(field_ref, bound)})"

    def matches(self, fields: dict[str, Any]) -> bool:
        actual = parse_timestamp(fields.get(self.field))
        bound = parse_timestamp(self.value)
        if actual is None or bound is None:
            return False
        return self._compare(actual, bound)


@dataclass(frozen=True)
class Lte(_TimestampComparison):
    """Timestamp field is at or before a point in time."""

    def _compare(self, actual: datetime, bound: datetime) -> bool:
        return actual <= bound

    def _formula_body(self, field_ref: str, bound: str) -> str:
        return f"NOT(IS_AFTER({field_ref}, {bound}))"


@dataclass(frozen=True)
class Lt(_TimestampComparison):
    """Timestamp field is strictly before a point in time."""

    def _compare(self, actual: datetime, bound: datetime) -> bool:
        return actual < bound

    def _formula_body(self, field_ref: str, bound: str) -> str:
        return f"IS_BEFORE({field_ref}, {bound})"


class And(Filter):
    """All sub-filters match."""

    def __init__(self, *filters: Filter) -> None:
        if not filters:
            raise ValueError("And() needs at least one filter")
        self.filters = filters

    def to_formula(self) -> str:
        if len(self.filters) == 1:
            return self.filters[0].to_formula()
        return "AND(" + ", ".join(f.to_formula() for f in self.filters) + ")"

    def matches(self, fields: dict[str, Any]) -> bool:
        return all(f.matches(fields) for f in self.filters)

    def __repr__(self) -> str:
        return f"And{self.filters!r}"


class Or(Filter):
    """Any sub-filter matches."""

    def __init__(self, *filters: Filter) -> None:
        if not filters:
            raise ValueError("Or() needs at least one filter")
        self.filters = filters

    def to_formula(self) -> str:
        if len(self.filters) == 1:
            return self.filters[0].to_formula()
        return "OR(" + ", ".join(f.to_formula() for f in self.filters) + ")"

    def matches(self, fields: dict[str, Any]) -> bool:
        return any(f.matches(fields) for f in self.filters)

    def __repr__(self) -> str:
        return f"Or{self.filters!r}"
