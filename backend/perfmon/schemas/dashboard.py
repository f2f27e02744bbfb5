# perfmon/schemas/dashboard.py
"""
Dashboard response schemas.

These models define the stable contract for the stat cards and charts consumed
by the frontend. Keep changes here intentional, because the UI depends on them.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from perfmon.schemas.logs import CallRecordItem


class DashboardStatsResponse(BaseModel):
    """
    Summary cards for the records matching the active filters.

    `today_calls` and `week_calls` always cover the whole store.
    `slowest_call` is null when nothing matches; all other fields are zero.
    """
    total_calls: int = Field(..., ge=0, description="Number of matching calls")
    today_calls: int = Field(..., ge=0, description="Calls since the start of today (unfiltered)")
    week_calls: int = Field(..., ge=0, description="Calls in the last 7 days (unfiltered)")
    success_rate: int = Field(..., ge=0, le=100, description="Percent of matching calls with 2xx status")
    error_rate: int = Field(..., ge=0, le=100, description="Percent of matching calls with status >= 400")
    avg_latency: int = Field(..., ge=0, description="Mean latency in ms (rounded)")
    min_latency: int = Field(..., ge=0, description="Fastest matching call in ms")
    max_latency: int = Field(..., ge=0, description="Slowest matching call in ms")
    slowest_call: Optional[CallRecordItem] = Field(
        default=None,
        description="The matching call with the highest latency",
    )
    filters_applied: Dict[str, str] = Field(
        default_factory=dict,
        description="Echo of applied filters (for UI clarity)",
    )


class TimelineBucket(BaseModel):
    """
    A single time bucket for the performance chart.

    Example:
      {"bucket_start": "2024-06-18T10:00:00Z", "requests": 7, "avg_latency": 115, "errors": 1}
    """
    bucket_start: str = Field(..., description="ISO8601 UTC timestamp representing the start of the bucket")
    requests: int = Field(..., ge=0, description="Number of calls in this bucket")
    avg_latency: int = Field(..., ge=0, description="Mean latency in ms for this bucket")
    errors: int = Field(..., ge=0, description="Calls with status >= 400 in this bucket")


class TimelineResponse(BaseModel):
    """Time series of matching calls, oldest bucket first."""
    bucket_minutes: int = Field(..., ge=1, description="Bucket width in minutes")
    buckets: List[TimelineBucket] = Field(default_factory=list, description="Ordered time buckets")
    filters_applied: Dict[str, str] = Field(
        default_factory=dict,
        description="Echo of applied filters (for UI clarity)",
    )
