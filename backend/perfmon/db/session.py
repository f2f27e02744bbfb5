# perfmon/db/session.py
"""
Database session and initialization utilities.

We use:
- SQLAlchemy async engine + AsyncSession
- SQLite via aiosqlite driver by default

Key points:
- `init_db()` creates tables and applies SQLite pragmas for performance.
- `create_engine_for()` + `create_session_factory()` build an isolated
  engine/session pair, used by tests and tools that must not share the
  application engine.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from perfmon.core.config import settings
from perfmon.db.models import Base

logger = logging.getLogger(__name__)


def _ensure_sqlite_directory(url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    parsed = make_url(url)
    if not parsed.drivername.startswith("sqlite"):
        return
    database = parsed.database or ""
    if not database or database == ":memory:":
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


CASEFOLD_SQL_FUNCTION = "py_casefold"


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if value is not None else None


def _register_sqlite_functions(dbapi_connection, _connection_record) -> None:
    # SQLite lower()/LIKE fold ASCII only; search needs full Unicode folding.
    dbapi_connection.create_function(CASEFOLD_SQL_FUNCTION, 1, _casefold)


def create_engine_for(url: str, **engine_kwargs: Any) -> AsyncEngine:
    """
    Create an async engine for `url`.

    For SQLite this also creates the database directory and registers
    `py_casefold()` on every new connection (used by text search).
    """
    _ensure_sqlite_directory(url)
    engine_ = create_async_engine(url, echo=False, future=True, **engine_kwargs)
    if engine_.dialect.name == "sqlite":
        event.listen(engine_.sync_engine, "connect", _register_sqlite_functions)
    return engine_


def create_session_factory(engine_: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to `engine_` (attributes stay loaded after commit)."""
    return async_sessionmaker(
        bind=engine_,
        expire_on_commit=False,
        class_=AsyncSession,
    )


# Application engine. Keep echo=False to avoid logging SQL in normal use.
engine = create_engine_for(settings.DATABASE_URL)

# Session factory used by FastAPI dependencies and services.
AsyncSessionLocal = create_session_factory(engine)


async def init_db(target: Optional[AsyncEngine] = None) -> None:
    """
    Initialize database schema and apply SQLite pragmas.

    Pragmas rationale:
    - journal_mode=WAL: readers don't block the appending writer
    - synchronous=NORMAL: good balance for durability vs speed
    """
    target = target or engine
    async with target.begin() as conn:
        if target.dialect.name == "sqlite":
            await conn.execute(text("PRAGMA journal_mode=WAL;"))
            await conn.execute(text("PRAGMA synchronous=NORMAL;"))

        # Create tables if they don't exist
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialized (%s)", target.url.render_as_string(hide_password=True))

