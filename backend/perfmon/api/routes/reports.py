# perfmon/api/routes/reports.py
"""
Report endpoints behind the dashboard's API statistics tabs.

- GET /api-names: distinct API names for the filter dropdown
- GET /reports/api-stats: per (api_name, status_code) frequency and latency
- GET /reports/api-performance: per-API volume, mean latency, error rate
- GET /reports/failures: per-API failure analysis
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from perfmon.api.deps import filter_params, get_monitor_service
from perfmon.engine.filters import FilterSpec
from perfmon.schemas.reports import ApiFailureItem, ApiGroupStatItem, ApiPerformanceItem
from perfmon.services.monitor_service import MonitorService

router = APIRouter()


@router.get("/api-names", response_model=List[str])
async def api_names(service: MonitorService = Depends(get_monitor_service)):
    return await service.list_api_names()


@router.get("/reports/api-stats", response_model=List[ApiGroupStatItem])
async def api_stats(
    filters: FilterSpec = Depends(filter_params),
    service: MonitorService = Depends(get_monitor_service),
):
    return await service.get_api_group_stats(filters)


@router.get("/reports/api-performance", response_model=List[ApiPerformanceItem])
async def api_performance(
    filters: FilterSpec = Depends(filter_params),
    service: MonitorService = Depends(get_monitor_service),
):
    return await service.get_api_performance(filters)


@router.get("/reports/failures", response_model=List[ApiFailureItem])
async def failures(
    filters: FilterSpec = Depends(filter_params),
    service: MonitorService = Depends(get_monitor_service),
):
    return await service.get_failure_stats(filters)
