# perfmon/engine/models.py
"""Typed values passed between the store, query engine and aggregator."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class NewCallRecord:
    """A call outcome to append. `id` and `requested_at` are filled in when absent."""

    api_name: str
    status_code: int
    latency_ms: int
    detail: str = ""
    requested_at: Optional[datetime] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class LatencySummary:
    """Whole-set aggregates for one predicate, as returned by the store."""

    total: int
    latency_sum: int
    min_latency: int
    max_latency: int
    success_count: int
    error_count: int


@dataclass(frozen=True)
class GroupRow:
    """Raw (api_name, status_code) aggregate row."""

    api_name: str
    status_code: int
    frequency: int
    latency_sum: int
    min_latency: int
    max_latency: int


@dataclass(frozen=True)
class ApiGroupStat:
    """Frequency and latency figures for one (api_name, status_code) pair."""

    api_name: str
    status_code: int
    frequency: int
    avg_latency: int
    min_latency: int
    max_latency: int


@dataclass(frozen=True)
class DashboardStats:
    total_calls: int
    today_calls: int
    week_calls: int
    success_rate: int
    error_rate: int
    avg_latency: int
    min_latency: int
    max_latency: int
    # CallRecord or None
    slowest_call: Optional[Any]


@dataclass(frozen=True)
class TimelineBucket:
    """Request volume, mean latency and errors for one time bucket."""

    bucket_start: datetime
    requests: int
    avg_latency: int
    errors: int


@dataclass(frozen=True)
class ApiPerformance:
    api_name: str
    count: int
    avg_latency: int
    errors: int
    error_rate: int
    slowest_latency: int
    slowest_at: datetime


@dataclass(frozen=True)
class ApiFailureStat:
    api_name: str
    total_failures: int
    today_failures: int
    week_failures: int
    avg_latency: int
    most_common_status: int
    most_common_status_count: int
