# perfmon/engine/filters.py
"""
Filter compilation.

A `FilterSpec` is what the caller asked for; a `Predicate` is the normalized,
ordered tuple of clauses the store applies (AND-ed together). Compilation is
pure: it never talks to the database, and compiling the same spec twice gives
equal predicates.

Keeping the clause list explicit lets us:
- unit test filter semantics without a live store
- evaluate the same predicate in memory (`Predicate.matches`) and in SQL
  (`perfmon.engine.store`) with one definition of each clause
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from perfmon.utils.parsers import (
    clean_text,
    isoformat_z,
    parse_filter_timestamp,
    parse_status_class,
)

# Status bands
SUCCESS_MIN = 200
SUCCESS_MAX_EXCLUSIVE = 300
ERROR_MIN = 400


def is_success(status_code: int) -> bool:
    return SUCCESS_MIN <= status_code < SUCCESS_MAX_EXCLUSIVE


def is_error(status_code: int) -> bool:
    return status_code >= ERROR_MIN


class ClauseKind(str, Enum):
    SEARCH = "search"
    STATUS_SUCCESS = "status_success"
    STATUS_ERROR = "status_error"
    STATUS_EQ = "status_eq"
    API_EQ = "api_eq"
    REQUESTED_FROM = "requested_from"
    REQUESTED_TO = "requested_to"


@dataclass(frozen=True)
class Clause:
    """One independent filter condition and its bound parameter(s)."""
    kind: ClauseKind
    params: Tuple[Any, ...] = ()

    @property
    def value(self) -> Any:
        return self.params[0] if self.params else None

    def matches(self, record: Any) -> bool:
        """Evaluate this clause against any object exposing CallRecord attributes."""
        kind = self.kind
        if kind is ClauseKind.SEARCH:
            needle = str(self.value).casefold()
            return needle in (record.api_name or "").casefold() or needle in (record.detail or "").casefold()
        if kind is ClauseKind.STATUS_SUCCESS:
            return is_success(record.status_code)
        if kind is ClauseKind.STATUS_ERROR:
            return is_error(record.status_code)
        if kind is ClauseKind.STATUS_EQ:
            return record.status_code == self.value
        if kind is ClauseKind.API_EQ:
            return record.api_name == self.value
        if kind is ClauseKind.REQUESTED_FROM:
            return record.requested_at >= self.value
        if kind is ClauseKind.REQUESTED_TO:
            return record.requested_at <= self.value
        raise ValueError(f"Unknown clause kind: {kind!r}")


@dataclass(frozen=True)
class Predicate:
    """Ordered clauses, AND-ed. No clauses matches every record."""
    clauses: Tuple[Clause, ...] = ()

    def __len__(self) -> int:
        return len(self.clauses)

    def __iter__(self):
        return iter(self.clauses)

    def matches(self, record: Any) -> bool:
        return all(clause.matches(record) for clause in self.clauses)

    def kinds(self) -> Tuple[ClauseKind, ...]:
        return tuple(c.kind for c in self.clauses)

    def describe(self) -> Dict[str, str]:
        """Echo of the applied filters (for UI clarity), keyed like the query string."""
        applied: Dict[str, str] = {}
        for clause in self.clauses:
            if clause.kind is ClauseKind.SEARCH:
                applied["search"] = clause.value
            elif clause.kind is ClauseKind.STATUS_SUCCESS:
                applied["status"] = "success"
            elif clause.kind is ClauseKind.STATUS_ERROR:
                applied["status"] = "error"
            elif clause.kind is ClauseKind.STATUS_EQ:
                applied["status"] = str(clause.value)
            elif clause.kind is ClauseKind.API_EQ:
                applied["api_name"] = clause.value
            elif clause.kind is ClauseKind.REQUESTED_FROM:
                applied["start_date"] = isoformat_z(clause.value)
            elif clause.kind is ClauseKind.REQUESTED_TO:
                applied["end_date"] = isoformat_z(clause.value)
        return applied


MATCH_ALL = Predicate()


def exact_api_predicate(api_name: str) -> Predicate:
    """Literal API_EQ match. Here "all" is an API name, not a wildcard."""
    return Predicate((Clause(ClauseKind.API_EQ, (api_name.strip(),)),))


@dataclass(frozen=True)
class FilterSpec:
    """
    Caller-supplied filters, before compilation.

    All fields are optional; an absent field adds no constraint.
    `status_class` is "success", "error", "all" or a literal status code.
    """
    search_text: Optional[str] = None
    status_class: Optional[Union[str, int]] = None
    api_name: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def from_raw(
        cls,
        *,
        search: Optional[str] = None,
        status: Optional[Union[str, int]] = None,
        api_name: Optional[str] = None,
        start_date: Optional[Union[str, datetime]] = None,
        end_date: Optional[Union[str, datetime]] = None,
    ) -> "FilterSpec":
        """
        Build a spec from untrusted request values.

        Empty, "all" and unparseable values (bad dates, non-numeric statuses)
        are dropped rather than rejected, so the dashboard keeps working on
        partial input.
        """
        return cls(
            search_text=(search or "").strip() or None,
            status_class=parse_status_class(status),
            api_name=clean_text(api_name),
            start=parse_filter_timestamp(start_date),
            end=parse_filter_timestamp(end_date, end_of_day=True),
        )


def compile_filters(spec: Optional[FilterSpec]) -> Predicate:
    """
    Compile a FilterSpec into a Predicate.

    Clause order is fixed (search, status, api, start, end) so equal specs
    always compile to equal predicates.
    """
    if spec is None:
        return MATCH_ALL

    clauses = []

    search = (spec.search_text or "").strip()
    if search:
        clauses.append(Clause(ClauseKind.SEARCH, (search,)))

    status = parse_status_class(spec.status_class)
    if status == "success":
        clauses.append(Clause(ClauseKind.STATUS_SUCCESS))
    elif status == "error":
        clauses.append(Clause(ClauseKind.STATUS_ERROR))
    elif isinstance(status, int):
        clauses.append(Clause(ClauseKind.STATUS_EQ, (status,)))

    api_name = clean_text(spec.api_name)
    if api_name:
        clauses.append(Clause(ClauseKind.API_EQ, (api_name,)))

    if spec.start is not None:
        clauses.append(Clause(ClauseKind.REQUESTED_FROM, (parse_filter_timestamp(spec.start),)))
    if spec.end is not None:
        clauses.append(Clause(ClauseKind.REQUESTED_TO, (parse_filter_timestamp(spec.end),)))

    return Predicate(tuple(clauses))
