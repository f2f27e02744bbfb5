# perfmon/api/routes/dashboard.py
"""
/dashboard

Stat cards and chart data for the monitoring dashboard.

Returns:
- /dashboard/stats: totals, rates, latency extremes and the slowest call
- /dashboard/timeline: per-bucket requests / mean latency / errors

Both accept the same filters as /logs, so the cards always describe the rows
the table is showing. The "today" and "this week" counters are the exception:
they always cover the whole store.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from perfmon.api.deps import filter_params, get_monitor_service
from perfmon.engine.filters import FilterSpec
from perfmon.schemas.dashboard import DashboardStatsResponse, TimelineResponse
from perfmon.services.monitor_service import MonitorService

router = APIRouter()


@router.get("/dashboard/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(
    filters: FilterSpec = Depends(filter_params),
    service: MonitorService = Depends(get_monitor_service),
):
    return await service.get_dashboard_stats(filters)


@router.get("/dashboard/timeline", response_model=TimelineResponse)
async def dashboard_timeline(
    bucket_minutes: int = Query(default=60, ge=15, le=1440, description="Time bucket size in minutes"),
    filters: FilterSpec = Depends(filter_params),
    service: MonitorService = Depends(get_monitor_service),
):
    return await service.get_timeline(filters, bucket_minutes=bucket_minutes)
