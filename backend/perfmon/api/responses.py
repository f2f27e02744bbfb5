# perfmon/api/responses.py
"""
JSON envelopes for non-model responses.

Successful listings and reports are returned as their pydantic models.
`/health` and every error share one envelope:

    {"success": bool, "data": ..., "error": {...} | null, "meta": {"request_id": ...}}
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import ORJSONResponse

# Error codes for plain HTTP errors (unknown route, wrong method, ...).
HTTP_ERROR_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def request_meta(request: Request) -> Dict[str, Any]:
    request_id = getattr(request.state, "request_id", None)
    return {"request_id": request_id} if request_id else {}


def success_body(data: Any = None, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"success": True, "data": data, "error": None, "meta": meta or {}}


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Optional[Any] = None,
) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "data": None,
            "error": {"code": code, "message": message, "details": details},
            "meta": request_meta(request),
        },
    )
