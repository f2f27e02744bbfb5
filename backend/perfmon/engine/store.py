# perfmon/engine/store.py
"""
Record store backed by SQLAlchemy.

The store is the only place that knows about SQL. It receives compiled
`Predicate`s and turns each clause into a SQLAlchemy expression; the clause
semantics mirror `Clause.matches` exactly.

Each public method opens its own session, so one call reads one consistent
view of the table. Database failures surface as `StoreUnavailable`; they are
logged here and never retried.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional, Sequence, Tuple

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import Select

from perfmon.core.errors import InvalidRequest, StoreUnavailable
from perfmon.db.models import CallRecord
from perfmon.engine.filters import (
    ERROR_MIN,
    SUCCESS_MAX_EXCLUSIVE,
    SUCCESS_MIN,
    Clause,
    ClauseKind,
    Predicate,
)
from perfmon.engine.models import GroupRow, LatencySummary, NewCallRecord
from perfmon.utils.parsers import to_utc_naive, utc_now

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "id": CallRecord.id,
    "detail": CallRecord.detail,
    "api_name": CallRecord.api_name,
    "status_code": CallRecord.status_code,
    "latency_ms": CallRecord.latency_ms,
    "requested_at": CallRecord.requested_at,
}

_LIKE_ESCAPE = "\\"


def _escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return (
        text.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def clause_to_sql(clause: Clause):
    """SQL expression for a single clause."""
    kind = clause.kind
    if kind is ClauseKind.SEARCH:
        # py_casefold is registered per connection by perfmon.db.session
        pattern = f"%{_escape_like(str(clause.value).casefold())}%"
        return or_(
            func.py_casefold(CallRecord.api_name).like(pattern, escape=_LIKE_ESCAPE),
            func.py_casefold(CallRecord.detail).like(pattern, escape=_LIKE_ESCAPE),
        )
    if kind is ClauseKind.STATUS_SUCCESS:
        return and_(CallRecord.status_code >= SUCCESS_MIN, CallRecord.status_code < SUCCESS_MAX_EXCLUSIVE)
    if kind is ClauseKind.STATUS_ERROR:
        return CallRecord.status_code >= ERROR_MIN
    if kind is ClauseKind.STATUS_EQ:
        return CallRecord.status_code == clause.value
    if kind is ClauseKind.API_EQ:
        return CallRecord.api_name == clause.value
    if kind is ClauseKind.REQUESTED_FROM:
        return CallRecord.requested_at >= clause.value
    if kind is ClauseKind.REQUESTED_TO:
        return CallRecord.requested_at <= clause.value
    raise ValueError(f"Unknown clause kind: {kind!r}")


def apply_predicate(stmt: Select, predicate: Predicate) -> Select:
    for clause in predicate:
        stmt = stmt.where(clause_to_sql(clause))
    return stmt


_success_flag = case(
    (and_(CallRecord.status_code >= SUCCESS_MIN, CallRecord.status_code < SUCCESS_MAX_EXCLUSIVE), 1),
    else_=0,
)
_error_flag = case((CallRecord.status_code >= ERROR_MIN, 1), else_=0)


class RecordStore:
    """
    Append-only table of call records.

    Built around an injected session factory so tests (and tools) can point
    it at any database.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.error("Record store operation '%s' failed: %s", operation, exc)
            raise StoreUnavailable(operation) from exc

    # -----------------------
    # Writes
    # -----------------------
    async def insert(self, record: NewCallRecord) -> str:
        """Append one record atomically and return its id."""
        if not (record.api_name or "").strip():
            raise InvalidRequest("api_name", "api_name must not be empty.")
        if record.latency_ms < 0:
            raise InvalidRequest("latency_ms", "latency_ms must be >= 0.")

        row = CallRecord(
            id=record.id or uuid.uuid4().hex,
            detail=record.detail or "",
            api_name=record.api_name.strip(),
            status_code=int(record.status_code),
            latency_ms=int(record.latency_ms),
            requested_at=to_utc_naive(record.requested_at) if record.requested_at else utc_now(),
        )

        try:
            async with self._session("insert") as session:
                session.add(row)
                await session.commit()
        except IntegrityError as exc:
            raise InvalidRequest("id", f"Record id {row.id!r} already exists.") from exc

        logger.debug("Recorded call %s (%s %s, %sms)", row.id, row.api_name, row.status_code, row.latency_ms)
        return row.id

    # -----------------------
    # Reads
    # -----------------------
    async def count(self, predicate: Predicate) -> int:
        async with self._session("count") as session:
            return await self._count(session, predicate)

    async def _count(self, session: AsyncSession, predicate: Predicate) -> int:
        stmt = apply_predicate(select(func.count()).select_from(CallRecord), predicate)
        return int((await session.execute(stmt)).scalar() or 0)

    async def fetch_page(
        self,
        predicate: Predicate,
        *,
        sort_field: str,
        descending: bool,
        offset: int,
        limit: int,
    ) -> Tuple[List[CallRecord], int]:
        """
        One page of matching records plus the total match count.

        Ties on the sort column are broken by id so page boundaries are
        deterministic across repeated calls.
        """
        column = SORT_COLUMNS[sort_field]
        order = column.desc() if descending else column.asc()

        async with self._session("fetch_page") as session:
            total = await self._count(session, predicate)
            if offset >= total:
                return [], total

            stmt = (
                apply_predicate(select(CallRecord), predicate)
                .order_by(order, CallRecord.id.asc())
                .limit(limit)
                .offset(offset)
            )
            rows = (await session.execute(stmt)).scalars().all()
            return list(rows), total

    async def scan(self, predicate: Predicate) -> List[CallRecord]:
        """Every matching record, oldest first."""
        stmt = apply_predicate(select(CallRecord), predicate).order_by(
            CallRecord.requested_at.asc(), CallRecord.id.asc()
        )
        async with self._session("scan") as session:
            return list((await session.execute(stmt)).scalars().all())

    async def group_by_api_status(self, predicate: Predicate) -> List[GroupRow]:
        frequency = func.count(CallRecord.id).label("frequency")
        stmt = (
            apply_predicate(
                select(
                    CallRecord.api_name,
                    CallRecord.status_code,
                    frequency,
                    func.sum(CallRecord.latency_ms).label("latency_sum"),
                    func.min(CallRecord.latency_ms).label("min_latency"),
                    func.max(CallRecord.latency_ms).label("max_latency"),
                ),
                predicate,
            )
            .group_by(CallRecord.api_name, CallRecord.status_code)
            .order_by(frequency.desc(), CallRecord.api_name.asc(), CallRecord.status_code.asc())
        )
        async with self._session("group_by_api_status") as session:
            result = await session.execute(stmt)
            return [
                GroupRow(
                    api_name=row.api_name,
                    status_code=int(row.status_code),
                    frequency=int(row.frequency),
                    latency_sum=int(row.latency_sum or 0),
                    min_latency=int(row.min_latency or 0),
                    max_latency=int(row.max_latency or 0),
                )
                for row in result
            ]

    async def _summarize(self, session: AsyncSession, predicate: Predicate) -> LatencySummary:
        stmt = apply_predicate(
            select(
                func.count(CallRecord.id).label("total"),
                func.coalesce(func.sum(CallRecord.latency_ms), 0).label("latency_sum"),
                func.min(CallRecord.latency_ms).label("min_latency"),
                func.max(CallRecord.latency_ms).label("max_latency"),
                func.coalesce(func.sum(_success_flag), 0).label("success_count"),
                func.coalesce(func.sum(_error_flag), 0).label("error_count"),
            ),
            predicate,
        )
        row = (await session.execute(stmt)).one()
        return LatencySummary(
            total=int(row.total or 0),
            latency_sum=int(row.latency_sum or 0),
            min_latency=int(row.min_latency or 0),
            max_latency=int(row.max_latency or 0),
            success_count=int(row.success_count or 0),
            error_count=int(row.error_count or 0),
        )

    async def _slowest(self, session: AsyncSession, predicate: Predicate) -> Optional[CallRecord]:
        stmt = (
            apply_predicate(select(CallRecord), predicate)
            .order_by(CallRecord.latency_ms.desc(), CallRecord.requested_at.asc(), CallRecord.id.asc())
            .limit(1)
        )
        return (await session.execute(stmt)).scalars().first()

    async def _count_since(self, session: AsyncSession, instants: Sequence[datetime]) -> List[int]:
        if not instants:
            return []
        columns = [
            func.coalesce(func.sum(case((CallRecord.requested_at >= instant, 1), else_=0)), 0)
            for instant in instants
        ]
        row = (await session.execute(select(*columns))).one()
        return [int(value or 0) for value in row]

    async def dashboard_snapshot(
        self,
        predicate: Predicate,
        windows: Sequence[datetime],
    ) -> Tuple[LatencySummary, Optional[CallRecord], List[int]]:
        """Summary, slowest record and window counts read in one session."""
        async with self._session("dashboard_snapshot") as session:
            summary = await self._summarize(session, predicate)
            slowest = await self._slowest(session, predicate) if summary.total else None
            window_counts = await self._count_since(session, windows)
            return summary, slowest, window_counts

    async def distinct_api_names(self) -> List[str]:
        stmt = select(CallRecord.api_name).distinct().order_by(CallRecord.api_name.asc())
        async with self._session("distinct_api_names") as session:
            return list((await session.execute(stmt)).scalars().all())

