# perfmon/api/routes/logs.py
"""
/logs

Browse, filter and record API call outcomes.

Supported filters (all optional, empty or "all" means no constraint):
- search, status, api_name, start_date, end_date
- pagination (page + limit) and sorting (sort_field + sort_direction)

This router is intentionally thin: parsing happens in dependencies,
everything else in MonitorService.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from perfmon.api.deps import filter_params, get_monitor_service
from perfmon.engine.filters import FilterSpec
from perfmon.schemas.ingest import RecordCallRequest, RecordCallResponse
from perfmon.schemas.logs import LogsResponse
from perfmon.services.monitor_service import MonitorService
from perfmon.utils.parsers import STATUS_CODE_MAX, STATUS_CODE_MIN, parse_filter_timestamp

router = APIRouter()


def _page_params(
    page: int = Query(default=1, description="1-indexed page number"),
    limit: Optional[int] = Query(default=None, description="Page size (defaults to DEFAULT_PAGE_SIZE)"),
    sort_field: Optional[str] = Query(default=None, description="Column to sort by (default requested_at)"),
    sort_direction: Optional[str] = Query(default=None, description="asc | desc (default desc)"),
) -> dict:
    return {
        "page": page,
        "page_size": limit,
        "sort_field": sort_field,
        "sort_direction": sort_direction,
    }


@router.get("/logs", response_model=LogsResponse)
async def list_logs(
    filters: FilterSpec = Depends(filter_params),
    paging: dict = Depends(_page_params),
    service: MonitorService = Depends(get_monitor_service),
):
    """
    Retrieve call records with optional filters.

    Example:
      /logs?status=error&api_name=event-stagedb-sync&page=2&limit=20&sort_field=latency_ms
    """
    return await service.list_logs(filters, **paging)


@router.post("/logs", response_model=RecordCallResponse, status_code=201)
async def record_call(
    body: RecordCallRequest,
    service: MonitorService = Depends(get_monitor_service),
):
    """Record one API call outcome and return its id."""
    record_id = await service.record_call(
        api_name=body.api_name,
        status_code=body.status_code,
        latency_ms=body.latency_ms,
        detail=body.detail,
        requested_at=body.requested_at,
    )
    return RecordCallResponse(id=record_id)


@router.get("/logs/date", response_model=LogsResponse)
async def list_logs_by_date(
    start: Optional[str] = Query(default=None, description="Inclusive start (ISO8601), required"),
    end: Optional[str] = Query(default=None, description="Inclusive end (ISO8601), required"),
    paging: dict = Depends(_page_params),
    service: MonitorService = Depends(get_monitor_service),
):
    """Records whose request time falls in [start, end]. Both bounds are required."""
    return await service.list_logs_in_range(
        parse_filter_timestamp(start),
        parse_filter_timestamp(end, end_of_day=True),
        **paging,
    )


@router.get("/logs/api/{api_name}", response_model=LogsResponse)
async def list_logs_by_api(
    api_name: str = Path(..., description="Exact API name"),
    paging: dict = Depends(_page_params),
    service: MonitorService = Depends(get_monitor_service),
):
    return await service.list_logs_for_api(api_name, **paging)


@router.get("/logs/status/{status_code}", response_model=LogsResponse)
async def list_logs_by_status(
    status_code: int = Path(..., ge=STATUS_CODE_MIN, le=STATUS_CODE_MAX, description="Exact status code"),
    paging: dict = Depends(_page_params),
    service: MonitorService = Depends(get_monitor_service),
):
    return await service.list_logs(FilterSpec(status_class=status_code), **paging)
