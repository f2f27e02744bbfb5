# perfmon/main.py
"""
ASGI entrypoint.

    uvicorn perfmon.main:app --reload   (run from backend/)

The database is prepared in the lifespan handler, so importing this module
(as the tests do) never touches it.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from perfmon.api.responses import HTTP_ERROR_CODES, error_response, success_body
from perfmon.api.routes.dashboard import router as dashboard_router
from perfmon.api.routes.logs import router as logs_router
from perfmon.api.routes.reports import router as reports_router
from perfmon.core.config import settings
from perfmon.core.errors import PerfMonitorError
from perfmon.core.logging import configure_logging

logger = logging.getLogger("perfmon")
request_logger = logging.getLogger("perfmon.request")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging(settings.LOG_LEVEL)

    from perfmon.db.session import engine, init_db

    await init_db()
    logger.info("API Performance Monitor started (env=%s)", settings.ENV)
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("API Performance Monitor stopped")


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(PerfMonitorError)
    async def perf_monitor_error_handler(request: Request, exc: PerfMonitorError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        return error_response(request, exc.status_code, exc.code, exc.message, exc.details())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        problems = [
            {"loc": list(err.get("loc", ())), "msg": str(err.get("msg", "")), "type": err.get("type")}
            for err in exc.errors()
        ]
        message = problems[0]["msg"] if problems else "Request validation failed."
        return error_response(request, 422, "VALIDATION_ERROR", message, problems)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        message = exc.detail if isinstance(exc.detail, str) else "Request failed."
        return error_response(request, exc.status_code, code, message)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        # exception text only in dev
        details = {"type": type(exc).__name__, "message": str(exc)} if settings.ENV == "dev" else None
        return error_response(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.", details)


def create_app() -> FastAPI:
    app = FastAPI(
        title="API Performance Monitor",
        version="0.1.0",
        description="Call records, filtered listings and dashboard aggregates",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials="*" not in settings.CORS_ALLOW_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_timing(request: Request, call_next):
        request_id = request.headers.get("x-request-id", "").strip() or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        took_ms = (time.perf_counter() - started) * 1000
        level = logging.WARNING if took_ms >= settings.SLOW_REQUEST_MS else logging.DEBUG
        request_logger.log(
            level,
            "%s %s -> %s in %.1f ms (request_id=%s)",
            request.method,
            request.url.path,
            response.status_code,
            took_ms,
            request_id,
        )
        response.headers["x-request-id"] = request_id
        response.headers["x-response-ms"] = f"{took_ms:.2f}"
        return response

    @app.get("/health", tags=["health"])
    async def health():
        return success_body({"status": "ok", "env": settings.ENV})

    app.include_router(logs_router, tags=["logs"])
    app.include_router(dashboard_router, tags=["dashboard"])
    app.include_router(reports_router, tags=["reports"])

    _register_error_handlers(app)
    return app


app = create_app()
