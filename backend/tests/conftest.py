from __future__ import annotations

import os
from collections.abc import AsyncIterator
from datetime import datetime
from pathlib import Path
from typing import Dict

os.environ.setdefault("ENV", "test")
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DASHBOARD_TIMEZONE", "UTC")

import pytest_asyncio
from sqlalchemy.pool import NullPool

from perfmon.db.session import create_engine_for, create_session_factory, init_db
from perfmon.engine.models import NewCallRecord
from perfmon.engine.store import RecordStore

# Three calls used throughout: two successes around one slow failure.
ABC_RECORDS = (
    NewCallRecord(
        id="a",
        api_name="get-static-data",
        status_code=200,
        latency_ms=100,
        detail="Static data retrieved",
        requested_at=datetime(2024, 6, 18, 9, 15, 0),
    ),
    NewCallRecord(
        id="b",
        api_name="event-stagedb-sync",
        status_code=500,
        latency_ms=300,
        detail="Upstream timeout",
        requested_at=datetime(2024, 6, 18, 10, 30, 0),
    ),
    NewCallRecord(
        id="c",
        api_name="get-static-data",
        status_code=200,
        latency_ms=50,
        detail="Static data retrieved (cached)",
        requested_at=datetime(2024, 6, 18, 11, 45, 0),
    ),
)


async def seed(store: RecordStore, *records: NewCallRecord) -> Dict[str, str]:
    """Insert records in order; returns {id: api_name} for convenience."""
    inserted = {}
    for record in records:
        record_id = await store.insert(record)
        inserted[record_id] = record.api_name
    return inserted


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> AsyncIterator[RecordStore]:
    db_path = tmp_path / "perf-test.db"
    engine = create_engine_for(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    await init_db(engine)
    try:
        yield RecordStore(create_session_factory(engine))
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def abc_store(store: RecordStore) -> RecordStore:
    await seed(store, *ABC_RECORDS)
    return store
