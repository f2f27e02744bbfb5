# perfmon/core/errors.py
"""
Error kinds raised by the query engine and surfaced by the API layer.

- InvalidRequest: the caller asked for something malformed (bad page, unknown
  sort field, missing range bound). Raised before the store is touched.
- StoreUnavailable: the underlying database failed. Never retried here.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PerfMonitorError(Exception):
    """Base class for errors raised by the perfmon engine."""

    code = "PERF_MONITOR_ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> Optional[Dict[str, Any]]:
        return None


class InvalidRequest(PerfMonitorError):
    """A request violated a pagination, sort or range constraint."""

    code = "INVALID_REQUEST"
    status_code = 400

    def __init__(self, constraint: str, message: str) -> None:
        super().__init__(message)
        self.constraint = constraint

    def details(self) -> Optional[Dict[str, Any]]:
        return {"constraint": self.constraint}


class StoreUnavailable(PerfMonitorError):
    """The record store could not complete an operation."""

    code = "STORE_UNAVAILABLE"
    status_code = 503

    def __init__(self, operation: str) -> None:
        super().__init__(f"Record store unavailable during '{operation}'.")
        self.operation = operation

    def details(self) -> Optional[Dict[str, Any]]:
        return {"operation": self.operation}
