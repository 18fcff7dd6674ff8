"""
Storage client for the reservation core.

`Database` is built once at process start (see app.main.lifespan), kept on
`app.state.database` and handed to every service that needs it. It is
disposed at shutdown. Nothing in the codebase holds a module-level engine.

Every reservation operation runs inside `Database.transaction()`:

  - commit on normal exit, explicit rollback on any exception
  - PostgreSQL: SET LOCAL statement_timeout bounds how long a transaction
    can hold row locks
  - SQLite: BEGIN IMMEDIATE so concurrent writers queue on the database lock
    instead of failing mid-transaction
  - driver/connection/pool failures, statement timeouts, deadlocks and
    serialization failures surface as StorageError (retryable)
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Depends, Request
from sqlalchemy import event, exc, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import Settings, get_settings
from app.core.exceptions import StorageError
from app.core.logging import get_logger

logger = get_logger(__name__)

_TRANSIENT_ERRORS = (exc.OperationalError, exc.InterfaceError, exc.TimeoutError)

# PostgreSQL conditions that abort the transaction but succeed on retry
RETRYABLE_SQLSTATES = frozenset({
    "57014",  # query_canceled (statement_timeout)
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
    "55P03",  # lock_not_available
})


class Database:
    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 20,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 1800,
        transaction_timeout_ms: Optional[int] = 5000,
        echo: bool = False,
    ):
        self.url = url
        self.transaction_timeout_ms = transaction_timeout_ms

        engine_kwargs = {"echo": echo}
        if url.startswith("sqlite"):
            # Wait for the write lock rather than raising "database is locked"
            engine_kwargs["connect_args"] = {"timeout": 30}
        else:
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                pool_pre_ping=True,
            )

        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            _configure_sqlite(self.engine)

        self.sessionmaker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Database":
        settings = settings or get_settings()
        return cls(
            settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            transaction_timeout_ms=settings.TRANSACTION_TIMEOUT_MS,
            echo=settings.DEBUG,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session bound to one database transaction."""
        session = self.sessionmaker()
        try:
            try:
                async with session.begin():
                    if self.dialect_name == "postgresql" and self.transaction_timeout_ms:
                        await session.execute(
                            text(f"SET LOCAL statement_timeout = {int(self.transaction_timeout_ms)}")
                        )
                    yield session
            except Exception as e:
                if is_transient_error(e):
                    logger.error("storage_error", error=str(e), error_type=type(e).__name__)
                    raise StorageError("Storage unavailable, please retry") from e
                logger.debug("transaction_rolled_back", error=type(e).__name__)
                raise
        finally:
            await session.close()

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("database_disposed")


def is_transient_error(error: BaseException) -> bool:
    """
    True for driver failures a client can retry: lost connections, pool
    timeouts, lock waits, and PostgreSQL statement timeouts, deadlocks and
    serialization failures. Constraint violations are not retryable.
    """
    if isinstance(error, _TRANSIENT_ERRORS):
        return True
    if isinstance(error, exc.DBAPIError):
        if error.connection_invalidated:
            return True
        sqlstate = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
        return sqlstate in RETRYABLE_SQLSTATES
    return False


def _configure_sqlite(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Take over BEGIN handling from the driver
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_database(request: Request) -> Database:
    """FastAPI dependency: the process-wide storage client."""
    return request.app.state.database


async def get_db(database: Database = Depends(get_database)) -> AsyncIterator[AsyncSession]:
    """Request-scoped transactional session for catalog and auth endpoints."""
    async with database.transaction() as session:
        yield session
