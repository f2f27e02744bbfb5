# perfmon/api/deps.py
"""
FastAPI dependencies shared by the routers.

- `get_monitor_service()` hands out the service bound to the application
  database. Tests swap it via `app.dependency_overrides`.
- `filter_params()` turns the common filter query string into a FilterSpec.
  Unknown or empty values are dropped, never rejected.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Query

from perfmon.engine.filters import FilterSpec
from perfmon.engine.store import RecordStore
from perfmon.services.monitor_service import MonitorService


@lru_cache(maxsize=1)
def get_monitor_service() -> MonitorService:
    from perfmon.db.session import AsyncSessionLocal

    return MonitorService(RecordStore(AsyncSessionLocal))


def filter_params(
    search: Optional[str] = Query(default=None, description="Substring of api_name or detail (case-insensitive)"),
    status: Optional[str] = Query(default=None, description="all | success | error | exact status code"),
    api_name: Optional[str] = Query(default=None, description="Exact API name, or 'all'"),
    start_date: Optional[str] = Query(default=None, description="Inclusive lower bound on request time (ISO8601)"),
    end_date: Optional[str] = Query(default=None, description="Inclusive upper bound on request time (ISO8601)"),
) -> FilterSpec:
    return FilterSpec.from_raw(
        search=search,
        status=status,
        api_name=api_name,
        start_date=start_date,
        end_date=end_date,
    )
