from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from loanflow.models import Base


def _is_memory(database_url: str) -> bool:
    return ":memory:" in database_url or database_url.endswith("sqlite+aiosqlite://")


def _engine_kwargs(database_url: str) -> dict:
    """Dialect-specific engine options for SQLite vs PostgreSQL."""

    kwargs: dict = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # An in-memory database only exists on its one connection.
        if _is_memory(database_url):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return kwargs


def _serialize_sqlite_writers(engine: AsyncEngine) -> None:
    # Take the write lock when the transaction starts; a deferred BEGIN
    # deadlocks when two sessions both try to upgrade a read lock.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(database_url: str) -> AsyncEngine:
    engine = create_async_engine(database_url, **_engine_kwargs(database_url))
    if database_url.startswith("sqlite") and not _is_memory(database_url):
        _serialize_sqlite_writers(engine)
    return engine


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
