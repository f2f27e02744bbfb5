# perfmon/schemas/logs.py
"""
Schemas for GET /logs and its variants.

Every key is always present; empty results use explicit zeros and empty lists.
"""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field


class CallRecordItem(BaseModel):
    """A single API call record for browsing."""
    id: str = Field(..., description="Record identifier")
    detail: str = Field(default="", description="Free-text detail recorded with the call")
    api_name: str = Field(..., description="Invoked API / operation name")
    status_code: int = Field(..., description="HTTP-style status code")
    latency_ms: int = Field(..., ge=0, description="Call duration in milliseconds")
    requested_at: str = Field(..., description="ISO8601 UTC timestamp of the call")


class Pagination(BaseModel):
    """
    Pagination block for listings.

    Example:
      {"page": 2, "page_size": 50, "total": 120, "total_pages": 3}
    """
    page: int = Field(..., ge=1, description="1-indexed page number")
    page_size: int = Field(..., ge=1, description="Maximum records per page")
    total: int = Field(..., ge=0, description="Total matching records before pagination")
    total_pages: int = Field(..., ge=0, description="ceil(total / page_size); 0 when total is 0")


class LogsResponse(BaseModel):
    """
    Response for browsing call records with filters.

    Example:
    {
      "records": [...],
      "pagination": {"page": 1, "page_size": 50, "total": 5, "total_pages": 1},
      "filters_applied": {"status": "error", "api_name": "get-static-data"}
    }
    """
    records: List[CallRecordItem] = Field(default_factory=list, description="Records on this page")
    pagination: Pagination = Field(..., description="Pagination details")
    filters_applied: Dict[str, str] = Field(
        default_factory=dict,
        description="Echo of applied filters (for UI clarity)",
    )
