"""Async SQLAlchemy engine, session management and the unit-of-work boundary."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from linguacred.errors import StorageConflictError

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

# Serialization failure, deadlock detected
_CONFLICT_SQLSTATES = frozenset({"40001", "40P01"})

PENDING_BALANCE_CHANGES = "pending_balance_changes"


async def init_db(url: str) -> None:
    """Initialize the database engine and session factory."""
    global _engine, _session_factory  # noqa: PLW0603
    kwargs: dict[str, Any] = {"pool_pre_ping": True, "echo": False}
    if url.startswith("postgresql"):
        kwargs.update(pool_size=20, max_overflow=10, connect_args={"statement_cache_size": 0})
    _engine = create_async_engine(url, **kwargs)
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def close_db() -> None:
    """Dispose of the database engine."""
    global _engine  # noqa: PLW0603
    if _engine:
        await _engine.dispose()
        _engine = None


def get_engine() -> AsyncEngine:
    """Get the async engine instance."""
    if _engine is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _engine


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    if _session_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    async with _session_factory() as session:
        yield session


def dialect_insert(db: AsyncSession, table: Any) -> Any:  # noqa: ANN401
    """Return an INSERT construct supporting ON CONFLICT for the session's dialect."""
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    msg = f"Dialect {name!r} does not support INSERT .. ON CONFLICT"
    raise RuntimeError(msg)


def is_storage_conflict(exc: DBAPIError) -> bool:
    """True when the driver error means the transaction lost a concurrency race."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return True
    return "database is locked" in str(orig)


def _discard_pending(db: AsyncSession) -> None:
    from linguacred.events import PENDING_EVENTS

    db.info.pop(PENDING_BALANCE_CHANGES, None)
    db.info.pop(PENDING_EVENTS, None)


async def insert_if_absent(
    db: AsyncSession,
    model: Any,  # noqa: ANN401
    values: dict[str, Any],
    index_elements: list[str],
) -> int | None:
    """Insert a row unless one already holds the unique key.

    Returns the new row id, or None when the key already existed. This is a
    single statement, so of two racing callers exactly one gets an id back.
    """
    stmt = (
        dialect_insert(db, model)
        .values(**values)
        .on_conflict_do_nothing(index_elements=index_elements)
        .returning(model.id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


@asynccontextmanager
async def atomic(db: AsyncSession, redis: object = None) -> AsyncIterator[AsyncSession]:
    """Run the enclosed block as a single transaction on ``db``.

    Commits on success and rolls back on any exception, so a ledger entry is
    never persisted without its balance update. Lost concurrency races are
    re-raised as ``StorageConflictError``. Balance changes and events queued
    during the transaction are published only after the commit succeeds.
    """
    try:
        yield db
        await db.commit()
    except DBAPIError as exc:
        await db.rollback()
        _discard_pending(db)
        if is_storage_conflict(exc):
            logger.warning("Transaction conflict, rolled back: %s", exc.orig)
            raise StorageConflictError from exc
        raise
    except BaseException:
        await db.rollback()
        _discard_pending(db)
        raise

    from linguacred.credits.balance_cache import publish_balance_changes
    from linguacred.events import PENDING_EVENTS, publish_events

    changes: dict[int, int] = db.info.pop(PENDING_BALANCE_CHANGES, {})
    events: list[tuple[str, dict[str, Any]]] = db.info.pop(PENDING_EVENTS, [])
    if changes:
        await publish_balance_changes(redis, changes)
    if events:
        await publish_events(redis, events)
