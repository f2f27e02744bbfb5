# perfmon/services/monitor_service.py
"""
Service facade used by the HTTP routes.

Routes parse query params, call one method here and return its model.
Each method wires filter compilation -> query engine / aggregator -> assembler.
The store is injected, so tests run it against a temporary database.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from perfmon.engine import assembler
from perfmon.engine.aggregator import Aggregator
from perfmon.engine.filters import FilterSpec, Predicate, compile_filters, exact_api_predicate
from perfmon.engine.models import NewCallRecord
from perfmon.engine.query import PageRequest, QueryEngine
from perfmon.engine.store import RecordStore
from perfmon.schemas.dashboard import DashboardStatsResponse, TimelineResponse
from perfmon.schemas.logs import LogsResponse
from perfmon.schemas.reports import ApiFailureItem, ApiGroupStatItem, ApiPerformanceItem


class MonitorService:
    def __init__(self, store: RecordStore, *, tz_name: Optional[str] = None) -> None:
        self.store = store
        self.queries = QueryEngine(store)
        self.aggregator = Aggregator(store, tz_name=tz_name)

    # -----------------------
    # Log listing
    # -----------------------
    async def list_logs(
        self,
        filters: Optional[FilterSpec] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        sort_field: Optional[str] = None,
        sort_direction: Optional[str] = None,
    ) -> LogsResponse:
        return await self._listing(compile_filters(filters), page, page_size, sort_field, sort_direction)

    async def list_logs_for_api(
        self,
        api_name: str,
        page: int = 1,
        page_size: Optional[int] = None,
        sort_field: Optional[str] = None,
        sort_direction: Optional[str] = None,
    ) -> LogsResponse:
        """Records of exactly `api_name`; unlike the filter, "all" is matched literally."""
        return await self._listing(exact_api_predicate(api_name), page, page_size, sort_field, sort_direction)

    async def _listing(
        self,
        predicate: Predicate,
        page: int,
        page_size: Optional[int],
        sort_field: Optional[str],
        sort_direction: Optional[str],
    ) -> LogsResponse:
        request = PageRequest.build(page, page_size, sort_field, sort_direction)
        records, total = await self.queries.fetch_page(predicate, request)
        return assembler.log_listing(records, total, request, predicate)

    async def list_logs_in_range(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        page: int = 1,
        page_size: Optional[int] = None,
        sort_field: Optional[str] = None,
        sort_direction: Optional[str] = None,
    ) -> LogsResponse:
        request = PageRequest.build(page, page_size, sort_field, sort_direction)
        predicate, records, total = await self.queries.fetch_range(start, end, request)
        return assembler.log_listing(records, total, request, predicate)

    # -----------------------
    # Dashboard
    # -----------------------
    async def get_dashboard_stats(
        self,
        filters: Optional[FilterSpec] = None,
        now: Optional[datetime] = None,
    ) -> DashboardStatsResponse:
        predicate = compile_filters(filters)
        stats = await self.aggregator.dashboard_stats(predicate, now=now)
        return assembler.dashboard_stats(stats, predicate)

    async def get_timeline(self, filters: Optional[FilterSpec] = None, bucket_minutes: int = 60) -> TimelineResponse:
        predicate = compile_filters(filters)
        buckets = await self.aggregator.hourly_timeline(predicate, bucket_minutes=bucket_minutes)
        return assembler.timeline(buckets, bucket_minutes, predicate)

    # -----------------------
    # Reports
    # -----------------------
    async def list_api_names(self) -> List[str]:
        return await self.queries.list_api_names()

    async def get_api_group_stats(self, filters: Optional[FilterSpec] = None) -> List[ApiGroupStatItem]:
        predicate = compile_filters(filters)
        return assembler.group_stats(await self.queries.group_by_api_status(predicate))

    async def get_api_performance(self, filters: Optional[FilterSpec] = None) -> List[ApiPerformanceItem]:
        predicate = compile_filters(filters)
        return assembler.api_performance(await self.aggregator.api_performance(predicate))

    async def get_failure_stats(
        self,
        filters: Optional[FilterSpec] = None,
        now: Optional[datetime] = None,
    ) -> List[ApiFailureItem]:
        predicate = compile_filters(filters)
        return assembler.failure_stats(await self.aggregator.failure_stats(predicate, now=now))

    # -----------------------
    # Ingestion
    # -----------------------
    async def record_call(
        self,
        *,
        api_name: str,
        status_code: int,
        latency_ms: int,
        detail: Optional[str] = None,
        requested_at: Optional[datetime] = None,
    ) -> str:
        return await self.store.insert(
            NewCallRecord(
                api_name=api_name,
                status_code=status_code,
                latency_ms=latency_ms,
                detail=detail or "",
                requested_at=requested_at,
            )
        )
