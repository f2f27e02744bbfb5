# perfmon/schemas/reports.py
"""
Schemas for the /reports endpoints (API performance report tabs).
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ApiGroupStatItem(BaseModel):
    """
    Frequency and latency figures for one (api_name, status_code) pair.

    Example:
      {"api_name": "event-stagedb-sync", "status_code": 424, "frequency": 3,
       "avg_latency": 637, "min_latency": 345, "max_latency": 1200}
    """
    api_name: str = Field(..., description="API name")
    status_code: int = Field(..., description="Status code shared by this group")
    frequency: int = Field(..., ge=1, description="Number of calls in this group")
    avg_latency: int = Field(..., ge=0, description="Mean latency in ms (rounded)")
    min_latency: int = Field(..., ge=0, description="Fastest call in ms")
    max_latency: int = Field(..., ge=0, description="Slowest call in ms")


class ApiPerformanceItem(BaseModel):
    """Per-API volume and latency (the 'slowest APIs' view)."""
    api_name: str = Field(..., description="API name")
    count: int = Field(..., ge=1, description="Number of calls")
    avg_latency: int = Field(..., ge=0, description="Mean latency in ms (rounded)")
    errors: int = Field(..., ge=0, description="Calls with status >= 400")
    error_rate: int = Field(..., ge=0, le=100, description="Percent of calls with status >= 400")
    slowest_latency: int = Field(..., ge=0, description="Highest latency observed in ms")
    slowest_at: str = Field(..., description="ISO8601 UTC timestamp of the slowest call")


class ApiFailureItem(BaseModel):
    """Per-API failure analysis row."""
    api_name: str = Field(..., description="API name")
    total_failures: int = Field(..., ge=1, description="Calls with status >= 400")
    today_failures: int = Field(..., ge=0, description="Failures since the start of today")
    week_failures: int = Field(..., ge=0, description="Failures in the last 7 days")
    avg_latency: int = Field(..., ge=0, description="Mean latency of failed calls in ms")
    most_common_status: int = Field(..., description="Most frequent failing status code")
    most_common_status_count: int = Field(..., ge=1, description="Occurrences of the most common status")
