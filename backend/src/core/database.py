"""
Async Database Configuration
SQLAlchemy 2.0 with async support
"""
from typing import Any, Callable, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from .config import settings


# Base class for ORM models
Base = declarative_base()


def build_engine(
    database_url: Optional[str] = None,
    json_serializer: Optional[Callable[[Any], str]] = None,
    json_deserializer: Optional[Callable[[str], Any]] = None,
) -> AsyncEngine:
    """
    Create the async engine.

    SQLite (aiosqlite) gets no pool sizing; other drivers get the
    configured pool, or NullPool in DEBUG.
    """
    url = database_url or settings.DATABASE_URL
    engine_args = {"echo": settings.DEBUG}

    if json_serializer is not None:
        engine_args["json_serializer"] = json_serializer
    if json_deserializer is not None:
        engine_args["json_deserializer"] = json_deserializer

    if url.startswith("sqlite"):
        engine_args["connect_args"] = {"timeout": 30}
    elif settings.DEBUG:
        engine_args["poolclass"] = NullPool
        engine_args["pool_pre_ping"] = True
    else:
        engine_args.update({
            "pool_pre_ping": True,
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_timeout": settings.DB_POOL_TIMEOUT,
            "pool_recycle": settings.DB_POOL_RECYCLE,
        })

    engine = create_async_engine(url, **engine_args)
    if url.startswith("sqlite"):
        _begin_immediate_on_sqlite(engine)
    return engine


def _begin_immediate_on_sqlite(engine: AsyncEngine) -> None:
    """
    Take the SQLite write lock when a transaction begins.

    SQLite ignores SELECT ... FOR UPDATE and pysqlite defers BEGIN until
    the first write, so without this two read-modify-write commits can
    interleave and one of them is lost.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory bound to an engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine):
    """Initialize database (create tables)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine):
    """Close database connections"""
    await engine.dispose()
