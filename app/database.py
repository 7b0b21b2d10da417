"""
Swipematch — Async Database Engine & Store Handle

Provides three connection strategies:

1. **Cloud Run (production)** – Uses ``cloud-sql-python-connector`` with
   automatic IAM authentication over a Unix domain socket.  Activated when
   ``CLOUD_SQL_USE_UNIX_SOCKET`` is *True* **and** a valid
   ``CLOUD_SQL_INSTANCE_CONNECTION`` is provided.

2. **PostgreSQL** – A standard ``asyncpg`` connection string read from
   ``DATABASE_URL``, with pool and statement timeouts applied.

3. **SQLite** – ``aiosqlite`` for local development and the test-suite.
   Every transaction opens with ``BEGIN IMMEDIATE`` so that concurrent
   writers queue on the database lock instead of failing mid-transaction.

All three are wrapped in a :class:`Store`, the single pooled handle that the
application creates at startup, injects into every service, and disposes at
shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import Settings, get_settings
from app.errors import StoreFailureError

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
# Declarative base for all ORM models
# ------------------------------------------------------------------ #

class Base(DeclarativeBase):
    """Shared declarative base.

    Every SQLAlchemy model in the project should inherit from this class::

        from app.database import Base

        class User(Base):
            __tablename__ = "users"
            ...
    """
    pass


# ------------------------------------------------------------------ #
# Engine construction helpers
# ------------------------------------------------------------------ #

def _pool_kwargs(settings: Settings) -> dict[str, Any]:
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


def normalise_database_url(url: str) -> str:
    """Upgrade plain ``postgresql://`` / ``sqlite://`` schemes to their async
    drivers so that developers do not need to remember the dialect prefix."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def _build_cloud_sql_engine(settings: Settings) -> AsyncEngine:
    """Create an async engine that connects through the Cloud SQL Python
    Connector with automatic IAM authentication.

    The connector manages the SSL tunnel / Unix socket transparently so
    the application only needs the *instance connection name*
    (``project:region:instance``).
    """
    from google.cloud.sql.connector import Connector

    connector = Connector()

    async def _get_connection():
        return await connector.connect_async(
            settings.CLOUD_SQL_INSTANCE_CONNECTION,
            "asyncpg",
            user=settings.DB_USER,
            password=settings.DB_PASSWORD,
            db=settings.DB_NAME,
            enable_iam_auth=True,
        )

    engine = create_async_engine(
        "postgresql+asyncpg://",
        async_creator=_get_connection,
        echo=(settings.LOG_LEVEL == "DEBUG"),
        **_pool_kwargs(settings),
    )

    logger.info(
        "Database engine created via Cloud SQL Connector (%s)",
        settings.CLOUD_SQL_INSTANCE_CONNECTION,
    )
    return engine


def _build_postgres_engine(settings: Settings, url: str) -> AsyncEngine:
    """Create an asyncpg engine; statements are bounded both client-side
    (``command_timeout``) and server-side (``statement_timeout``)."""
    timeout = settings.DB_STATEMENT_TIMEOUT_SECONDS
    engine = create_async_engine(
        url,
        echo=(settings.LOG_LEVEL == "DEBUG"),
        connect_args={
            "command_timeout": timeout,
            "server_settings": {"statement_timeout": str(int(timeout * 1000))},
        },
        **_pool_kwargs(settings),
    )
    logger.info("Database engine created from DATABASE_URL (postgresql)")
    return engine


def _build_sqlite_engine(settings: Settings, url: str) -> AsyncEngine:
    engine = create_async_engine(
        url,
        echo=(settings.LOG_LEVEL == "DEBUG"),
        connect_args={"timeout": settings.DB_STATEMENT_TIMEOUT_SECONDS},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Hand transaction control to the "begin" hook below.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    logger.info("Database engine created from DATABASE_URL (sqlite)")
    return engine


def create_engine_from_settings(settings: Settings | None = None) -> AsyncEngine:
    """Select the appropriate engine builder based on configuration."""
    settings = settings or get_settings()

    use_cloud_sql = (
        settings.CLOUD_SQL_USE_UNIX_SOCKET
        and settings.CLOUD_SQL_INSTANCE_CONNECTION
    )
    if use_cloud_sql:
        return _build_cloud_sql_engine(settings)

    url = normalise_database_url(settings.DATABASE_URL)
    if make_url(url).get_backend_name() == "sqlite":
        return _build_sqlite_engine(settings, url)
    return _build_postgres_engine(settings, url)


# ------------------------------------------------------------------ #
# Store handle
# ------------------------------------------------------------------ #

class Store:
    """Pooled handle to the persistent store.

    One instance lives for the whole process (created in the FastAPI
    lifespan, kept on ``app.state``) and is passed to every service.  Each
    service operation borrows a session through :meth:`transaction`, which
    commits on success, rolls back on any exception, and reports
    persistence-layer failures as :class:`StoreFailureError`.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def insert(self, entity):
        """Return the dialect's INSERT construct, which supports
        ``on_conflict_do_update`` / ``on_conflict_do_nothing``."""
        if self.dialect_name == "sqlite":
            return sqlite.insert(entity)
        return postgresql.insert(entity)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
            logger.error("Store operation failed: %s", exc)
            raise StoreFailureError(f"{type(exc).__name__}: {exc}") from exc

    async def ping(self) -> None:
        async with self.transaction() as session:
            await session.execute(text("SELECT 1"))

    async def create_all(self) -> None:
        """Create every table registered on ``Base.metadata``."""
        import app.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


def create_store(settings: Settings | None = None) -> Store:
    return Store(create_engine_from_settings(settings))


# ------------------------------------------------------------------ #
# FastAPI dependency
# ------------------------------------------------------------------ #

def get_store(request: Request) -> Store:
    """Return the process-wide store attached to the application.

    Usage in a FastAPI route::

        from fastapi import Depends
        from app.database import get_store

        @router.get("/items")
        async def list_items(store: Store = Depends(get_store)):
            ...
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("Store not initialised; application lifespan has not run")
    return store
