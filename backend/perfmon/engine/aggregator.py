# perfmon/engine/aggregator.py
"""
Dashboard aggregates derived from the record store.

Definitions shared by every view:
- success band is [200, 300), error band is >= 400; other statuses (3xx, 1xx)
  count toward totals but neither rate numerator
- averages and percentages are integers rounded half-up
- "today" starts at midnight of the configured dashboard timezone and "week"
  is the trailing 7 days; both come from a single `now` captured per call

Whole-set figures (totals, rates, extremes) are computed by the database.
The per-hour and per-API breakdowns are computed here from one scan of the
matching rows.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from perfmon.core.config import settings
from perfmon.core.errors import InvalidRequest
from perfmon.db.models import CallRecord
from perfmon.engine.filters import Predicate, is_error
from perfmon.engine.models import ApiFailureStat, ApiPerformance, DashboardStats, TimelineBucket
from perfmon.engine.query import round_half_up_ratio
from perfmon.engine.store import RecordStore
from perfmon.utils.parsers import to_utc_naive, utc_now

WEEK = timedelta(days=7)
MINUTES_PER_DAY = 24 * 60


def time_windows(now: datetime, tz_name: str = "UTC") -> Tuple[datetime, datetime]:
    """
    (start of today, start of trailing week) as naive UTC datetimes.

    `now` is naive UTC; "today" is the calendar day of `now` in `tz_name`.
    """
    local = now.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz_name))
    local_midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    today_start = local_midnight.astimezone(timezone.utc).replace(tzinfo=None)
    return today_start, now - WEEK


def percentage_pair(success: int, errors: int, total: int) -> Tuple[int, int]:
    """
    Success and error rates as whole percentages.

    Both round half-up independently; when two exact halves would push the sum
    past 100 the success rate gives up the extra point.
    """
    if total <= 0:
        return 0, 0
    success_rate = round_half_up_ratio(100 * success, total)
    error_rate = round_half_up_ratio(100 * errors, total)
    overflow = success_rate + error_rate - 100
    if overflow > 0:
        success_rate -= overflow
    return success_rate, error_rate


def floor_to_bucket(dt: datetime, bucket_minutes: int) -> datetime:
    """Floor dt to the start of its bucket (buckets restart at midnight)."""
    minute_of_day = dt.hour * 60 + dt.minute
    floored = (minute_of_day // bucket_minutes) * bucket_minutes
    return dt.replace(hour=floored // 60, minute=floored % 60, second=0, microsecond=0)


class Aggregator:
    """Derived statistics over an injected RecordStore."""

    def __init__(self, store: RecordStore, *, tz_name: Optional[str] = None) -> None:
        self.store = store
        self.tz_name = tz_name or settings.DASHBOARD_TIMEZONE

    async def dashboard_stats(self, predicate: Predicate, now: Optional[datetime] = None) -> DashboardStats:
        """
        Summary over records matching `predicate`.

        `today_calls` / `week_calls` ignore the predicate and count the whole store.
        """
        now = to_utc_naive(now) if now is not None else utc_now()
        today_start, week_start = time_windows(now, self.tz_name)

        summary, slowest, (today_calls, week_calls) = await self.store.dashboard_snapshot(
            predicate, [today_start, week_start]
        )

        success_rate, error_rate = percentage_pair(summary.success_count, summary.error_count, summary.total)
        return DashboardStats(
            total_calls=summary.total,
            today_calls=today_calls,
            week_calls=week_calls,
            success_rate=success_rate,
            error_rate=error_rate,
            avg_latency=round_half_up_ratio(summary.latency_sum, summary.total),
            min_latency=summary.min_latency if summary.total else 0,
            max_latency=summary.max_latency if summary.total else 0,
            slowest_call=slowest,
        )

    async def hourly_timeline(self, predicate: Predicate, bucket_minutes: int = 60) -> List[TimelineBucket]:
        """Requests, mean latency and errors per time bucket, oldest bucket first."""
        if not 1 <= bucket_minutes <= MINUTES_PER_DAY:
            raise InvalidRequest("bucket_minutes", f"bucket_minutes must be between 1 and {MINUTES_PER_DAY}.")
        rows = await self.store.scan(predicate)

        requests: Counter = Counter()
        latency: Counter = Counter()
        errors: Counter = Counter()
        for r in rows:
            b = floor_to_bucket(r.requested_at, bucket_minutes)
            requests[b] += 1
            latency[b] += r.latency_ms
            if is_error(r.status_code):
                errors[b] += 1

        return [
            TimelineBucket(
                bucket_start=b,
                requests=requests[b],
                avg_latency=round_half_up_ratio(latency[b], requests[b]),
                errors=errors[b],
            )
            for b in sorted(requests)
        ]

    async def api_performance(self, predicate: Predicate) -> List[ApiPerformance]:
        """Per-API volume, latency and error rate, slowest APIs (by mean) first."""
        rows = await self.store.scan(predicate)

        grouped: Dict[str, List[CallRecord]] = defaultdict(list)
        for r in rows:
            grouped[r.api_name].append(r)

        stats = []
        for api_name, items in grouped.items():
            count = len(items)
            error_count = sum(1 for i in items if is_error(i.status_code))
            # rows arrive oldest first, so the earliest of equally slow calls wins
            slowest = items[0]
            for i in items[1:]:
                if i.latency_ms > slowest.latency_ms:
                    slowest = i
            stats.append(
                ApiPerformance(
                    api_name=api_name,
                    count=count,
                    avg_latency=round_half_up_ratio(sum(i.latency_ms for i in items), count),
                    errors=error_count,
                    error_rate=round_half_up_ratio(100 * error_count, count),
                    slowest_latency=slowest.latency_ms,
                    slowest_at=slowest.requested_at,
                )
            )

        stats.sort(key=lambda s: (-s.avg_latency, s.api_name))
        return stats

    async def failure_stats(self, predicate: Predicate, now: Optional[datetime] = None) -> List[ApiFailureStat]:
        """Per-API breakdown of error-band records in the matching set."""
        now = to_utc_naive(now) if now is not None else utc_now()
        today_start, week_start = time_windows(now, self.tz_name)

        rows = await self.store.scan(predicate)
        failures: Dict[str, List[CallRecord]] = defaultdict(list)
        for r in rows:
            if is_error(r.status_code):
                failures[r.api_name].append(r)

        stats = []
        for api_name, items in failures.items():
            status_counts = Counter(i.status_code for i in items)
            # most frequent status; lowest code wins ties
            common_status, common_count = min(status_counts.items(), key=lambda kv: (-kv[1], kv[0]))
            stats.append(
                ApiFailureStat(
                    api_name=api_name,
                    total_failures=len(items),
                    today_failures=sum(1 for i in items if i.requested_at >= today_start),
                    week_failures=sum(1 for i in items if i.requested_at >= week_start),
                    avg_latency=round_half_up_ratio(sum(i.latency_ms for i in items), len(items)),
                    most_common_status=common_status,
                    most_common_status_count=common_count,
                )
            )

        stats.sort(key=lambda s: (-s.total_failures, s.api_name))
        return stats
