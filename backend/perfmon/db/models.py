# perfmon/db/models.py
"""
SQLAlchemy ORM models for the API performance monitor.

Design goals:
- One append-only table of observed API calls.
- Simple, explicit column types for SQLite compatibility.
- Indexes on the columns the dashboard filters, sorts and groups by.

Notes:
- Timestamps are stored as naive UTC datetimes (timezone-less) for SQLite simplicity.
  We convert to/from ISO 8601 with a trailing "Z" at the API boundary.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


class CallRecord(Base):
    """
    A single observed API invocation.

    Rows are never updated or deleted by the application; `id` is assigned
    once at insert time and never reused.
    """

    __tablename__ = "perf_report"

    # uuid4 hex
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    detail: Mapped[str] = mapped_column(Text, nullable=False, default="")

    api_name: Mapped[str] = mapped_column(String(256), index=True, nullable=False)
    status_code: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    latency_ms: Mapped[int] = mapped_column(Integer, nullable=False)

    # Naive UTC datetime (timezone-less). Convert to/from ISO8601 "Z" in API.
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), index=True, nullable=False)

    __table_args__ = (
        Index("ix_perf_report_api_status", "api_name", "status_code"),
    )

    def __repr__(self) -> str:
        return (
            f"CallRecord(id={self.id!r}, api_name={self.api_name!r}, "
            f"status_code={self.status_code}, latency_ms={self.latency_ms})"
        )
