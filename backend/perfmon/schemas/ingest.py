# perfmon/schemas/ingest.py
"""
Schemas for POST /logs (recording one API call outcome).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from perfmon.utils.parsers import STATUS_CODE_MAX, STATUS_CODE_MIN, parse_timestamp


class RecordCallRequest(BaseModel):
    """
    One observed API call.

    Example:
    {
      "api_name": "get-static-data",
      "status_code": 200,
      "latency_ms": 70,
      "detail": "Static data retrieved",
      "requested_at": "2024-06-18T11:45:00Z"
    }
    """
    api_name: str = Field(..., min_length=1, max_length=256, description="Invoked API / operation name")
    status_code: int = Field(..., ge=STATUS_CODE_MIN, le=STATUS_CODE_MAX, description="HTTP-style status code")
    latency_ms: int = Field(..., ge=0, description="Call duration in milliseconds")
    detail: str = Field(default="", description="Optional free-text detail")
    requested_at: Optional[datetime] = Field(
        default=None,
        description="ISO8601 timestamp of the call; defaults to ingestion time",
    )

    @field_validator("api_name")
    @classmethod
    def _strip_api_name(cls, v: str) -> str:
        name = v.strip()
        if not name:
            raise ValueError("api_name must not be blank")
        return name

    @field_validator("detail", mode="before")
    @classmethod
    def _default_detail(cls, v):
        return "" if v is None else v

    @field_validator("requested_at", mode="before")
    @classmethod
    def _parse_requested_at(cls, v):
        if v is None or v == "":
            return None
        # Normalize to naive UTC; raises ValueError for garbage.
        return parse_timestamp(v)


class RecordCallResponse(BaseModel):
    """Identifier assigned to the recorded call."""
    id: str = Field(..., description="Record identifier")
