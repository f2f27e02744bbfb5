# perfmon/core/config.py
"""
Runtime configuration.

Values come from environment variables, then `backend/.env`, then the
defaults below. Import the module-level `settings`; build a fresh `Settings`
only in tests.
"""

from __future__ import annotations

from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Runtime
    ENV: str = Field(default="dev", description="dev | test | prod")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level name")

    # HTTP
    CORS_ALLOW_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000", "http://localhost:8080"],
        description="Origins the dashboard frontend is served from",
    )
    SLOW_REQUEST_MS: int = Field(
        default=1000,
        ge=1,
        description="Requests slower than this are logged at WARNING",
    )

    # Storage (async driver required)
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./data/perf_reports.db",
        description="SQLAlchemy URL of the record store",
    )

    # Listing / dashboard
    DEFAULT_PAGE_SIZE: int = Field(default=50, ge=1, description="Page size used when the caller sends none")
    MAX_PAGE_SIZE: int = Field(default=500, ge=1, description="Largest page size a caller may request")
    DASHBOARD_TIMEZONE: str = Field(
        default="UTC",
        description="IANA zone whose calendar day defines 'today' in dashboard counts",
    )

    @field_validator("ENV", "LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_names(cls, v, info):
        raw = str(v or "").strip()
        if info.field_name == "ENV":
            return raw.lower() or "dev"
        return raw.upper() or "INFO"

    @field_validator("CORS_ALLOW_ORIGINS")
    @classmethod
    def _drop_blank_origins(cls, v: List[str]) -> List[str]:
        return [origin.strip() for origin in v or [] if origin and origin.strip()]

    @field_validator("DATABASE_URL")
    @classmethod
    def _strip_url(cls, v: str) -> str:
        return v.strip()

    @field_validator("DASHBOARD_TIMEZONE")
    @classmethod
    def _known_timezone(cls, v: str) -> str:
        name = v.strip() or "UTC"
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {name!r}") from exc
        return name

    @model_validator(mode="after")
    def _page_sizes_consistent(self) -> "Settings":
        if self.DEFAULT_PAGE_SIZE > self.MAX_PAGE_SIZE:
            raise ValueError("DEFAULT_PAGE_SIZE must not exceed MAX_PAGE_SIZE")
        return self


settings = Settings()
