# perfmon/engine/assembler.py
"""
Shapes engine results into the response models served to the dashboard.

No business logic here: only renaming, ISO formatting and page arithmetic.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

from perfmon.engine.filters import Predicate
from perfmon.engine.models import ApiFailureStat, ApiGroupStat, ApiPerformance, DashboardStats, TimelineBucket
from perfmon.engine.query import PageRequest
from perfmon.schemas.dashboard import DashboardStatsResponse, TimelineResponse
from perfmon.schemas.dashboard import TimelineBucket as TimelineBucketItem
from perfmon.schemas.logs import CallRecordItem, LogsResponse, Pagination
from perfmon.schemas.reports import ApiFailureItem, ApiGroupStatItem, ApiPerformanceItem
from perfmon.utils.parsers import isoformat_z


def total_pages(total: int, page_size: int) -> int:
    """ceil(total / page_size), 0 when there is nothing to page through."""
    if total <= 0:
        return 0
    return -(-total // page_size)


def record_item(row: Any) -> CallRecordItem:
    return CallRecordItem(
        id=row.id,
        detail=row.detail or "",
        api_name=row.api_name,
        status_code=row.status_code,
        latency_ms=row.latency_ms,
        requested_at=isoformat_z(row.requested_at),
    )


def optional_record_item(row: Optional[Any]) -> Optional[CallRecordItem]:
    return record_item(row) if row is not None else None


def log_listing(
    records: Iterable[Any],
    total: int,
    request: PageRequest,
    predicate: Predicate,
) -> LogsResponse:
    return LogsResponse(
        records=[record_item(r) for r in records],
        pagination=Pagination(
            page=request.page,
            page_size=request.page_size,
            total=total,
            total_pages=total_pages(total, request.page_size),
        ),
        filters_applied=predicate.describe(),
    )


def dashboard_stats(stats: DashboardStats, predicate: Predicate) -> DashboardStatsResponse:
    return DashboardStatsResponse(
        total_calls=stats.total_calls,
        today_calls=stats.today_calls,
        week_calls=stats.week_calls,
        success_rate=stats.success_rate,
        error_rate=stats.error_rate,
        avg_latency=stats.avg_latency,
        min_latency=stats.min_latency,
        max_latency=stats.max_latency,
        slowest_call=optional_record_item(stats.slowest_call),
        filters_applied=predicate.describe(),
    )


def group_stats(rows: Iterable[ApiGroupStat]) -> List[ApiGroupStatItem]:
    return [
        ApiGroupStatItem(
            api_name=r.api_name,
            status_code=r.status_code,
            frequency=r.frequency,
            avg_latency=r.avg_latency,
            min_latency=r.min_latency,
            max_latency=r.max_latency,
        )
        for r in rows
    ]


def timeline(buckets: Iterable[TimelineBucket], bucket_minutes: int, predicate: Predicate) -> TimelineResponse:
    return TimelineResponse(
        bucket_minutes=bucket_minutes,
        buckets=[
            TimelineBucketItem(
                bucket_start=isoformat_z(b.bucket_start),
                requests=b.requests,
                avg_latency=b.avg_latency,
                errors=b.errors,
            )
            for b in buckets
        ],
        filters_applied=predicate.describe(),
    )


def api_performance(rows: Iterable[ApiPerformance]) -> List[ApiPerformanceItem]:
    return [
        ApiPerformanceItem(
            api_name=r.api_name,
            count=r.count,
            avg_latency=r.avg_latency,
            errors=r.errors,
            error_rate=r.error_rate,
            slowest_latency=r.slowest_latency,
            slowest_at=isoformat_z(r.slowest_at),
        )
        for r in rows
    ]


def failure_stats(rows: Iterable[ApiFailureStat]) -> List[ApiFailureItem]:
    return [
        ApiFailureItem(
            api_name=r.api_name,
            total_failures=r.total_failures,
            today_failures=r.today_failures,
            week_failures=r.week_failures,
            avg_latency=r.avg_latency,
            most_common_status=r.most_common_status,
            most_common_status_count=r.most_common_status_count,
        )
        for r in rows
    ]
