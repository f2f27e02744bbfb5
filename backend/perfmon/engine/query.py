# perfmon/engine/query.py
"""
Query engine: count, paginated fetch and (api, status) grouping.

Every operation takes a compiled `Predicate`, so all three agree on which
records match: `fetch_page(P).total == count(P)` and the group frequencies
sum to `count(P)`.

Request validation happens here, before the store is touched.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from perfmon.core.config import settings
from perfmon.core.errors import InvalidRequest
from perfmon.db.models import CallRecord
from perfmon.engine.filters import FilterSpec, Predicate, compile_filters
from perfmon.engine.models import ApiGroupStat
from perfmon.engine.store import SORT_COLUMNS, RecordStore

DEFAULT_SORT_FIELD = "requested_at"
DEFAULT_SORT_DIRECTION = "desc"

# Legacy column names still sent by older dashboard builds.
SORT_FIELD_ALIASES = {
    "uuid": "id",
    "details": "detail",
    "status": "status_code",
    "response_time_in_ms": "latency_ms",
    "request_time": "requested_at",
}


def round_half_up_ratio(numerator: int, denominator: int) -> int:
    """Integer nearest to numerator/denominator, halves rounded up (non-negative inputs)."""
    if denominator <= 0:
        return 0
    return (2 * numerator + denominator) // (2 * denominator)


def normalize_sort_field(value: Optional[str]) -> str:
    raw = (value or "").strip().lower()
    if not raw:
        return DEFAULT_SORT_FIELD
    field = SORT_FIELD_ALIASES.get(raw, raw)
    if field not in SORT_COLUMNS:
        raise InvalidRequest(
            "sort_field",
            f"Unknown sort field {value!r}. Expected one of: {', '.join(sorted(SORT_COLUMNS))}.",
        )
    return field


def normalize_sort_direction(value: Optional[str]) -> str:
    raw = (value or "").strip().lower()
    if not raw:
        return DEFAULT_SORT_DIRECTION
    if raw not in ("asc", "desc"):
        raise InvalidRequest("sort_direction", f"sort_direction must be 'asc' or 'desc', got {value!r}.")
    return raw


@dataclass(frozen=True)
class PageRequest:
    """Validated pagination and sort parameters for one listing request."""

    page: int = 1
    page_size: int = 50
    sort_field: str = DEFAULT_SORT_FIELD
    sort_direction: str = DEFAULT_SORT_DIRECTION

    @classmethod
    def build(
        cls,
        page: int = 1,
        page_size: Optional[int] = None,
        sort_field: Optional[str] = None,
        sort_direction: Optional[str] = None,
    ) -> "PageRequest":
        """
        Validate and normalize raw pagination input.

        Raises:
            InvalidRequest: non-positive page/page_size, oversized page,
                unknown sort field or direction.
        """
        if page_size is None:
            page_size = settings.DEFAULT_PAGE_SIZE
        if page <= 0:
            raise InvalidRequest("page", f"page must be >= 1, got {page}.")
        if page_size <= 0:
            raise InvalidRequest("page_size", f"page_size must be >= 1, got {page_size}.")
        if page_size > settings.MAX_PAGE_SIZE:
            raise InvalidRequest(
                "page_size",
                f"page_size must be <= {settings.MAX_PAGE_SIZE}, got {page_size}.",
            )
        return cls(
            page=page,
            page_size=page_size,
            sort_field=normalize_sort_field(sort_field),
            sort_direction=normalize_sort_direction(sort_direction),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def descending(self) -> bool:
        return self.sort_direction == "desc"


class QueryEngine:
    """Stateless query operations over an injected RecordStore."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def count(self, predicate: Predicate) -> int:
        return max(0, await self.store.count(predicate))

    async def fetch_page(self, predicate: Predicate, request: PageRequest) -> Tuple[List[CallRecord], int]:
        """
        The `request.page`-th slice of matching records, plus the total count.

        A page past the end yields an empty list with the correct total.
        """
        # Re-check: PageRequest may be constructed directly, bypassing build().
        if request.page <= 0:
            raise InvalidRequest("page", f"page must be >= 1, got {request.page}.")
        if request.page_size <= 0:
            raise InvalidRequest("page_size", f"page_size must be >= 1, got {request.page_size}.")

        return await self.store.fetch_page(
            predicate,
            sort_field=normalize_sort_field(request.sort_field),
            descending=normalize_sort_direction(request.sort_direction) == "desc",
            offset=request.offset,
            limit=request.page_size,
        )

    async def fetch_range(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        request: PageRequest,
    ) -> Tuple[Predicate, List[CallRecord], int]:
        """Explicit date-range listing; both bounds are required."""
        if start is None:
            raise InvalidRequest("start", "Missing or invalid start date for range query.")
        if end is None:
            raise InvalidRequest("end", "Missing or invalid end date for range query.")
        if start > end:
            raise InvalidRequest("start", "start must not be after end.")

        predicate = compile_filters(FilterSpec(start=start, end=end))
        records, total = await self.fetch_page(predicate, request)
        return predicate, records, total

    async def group_by_api_status(self, predicate: Predicate) -> List[ApiGroupStat]:
        """
        One row per (api_name, status_code) in the matching set.

        Ordered by frequency desc, then api_name asc, then status_code asc.
        """
        rows = await self.store.group_by_api_status(predicate)
        stats = [
            ApiGroupStat(
                api_name=row.api_name,
                status_code=row.status_code,
                frequency=row.frequency,
                avg_latency=round_half_up_ratio(row.latency_sum, row.frequency),
                min_latency=row.min_latency,
                max_latency=row.max_latency,
            )
            for row in rows
        ]
        stats.sort(key=lambda s: (-s.frequency, s.api_name, s.status_code))
        return stats

    async def list_api_names(self) -> List[str]:
        return await self.store.distinct_api_names()
