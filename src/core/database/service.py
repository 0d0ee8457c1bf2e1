"""
Database Service - core persistence infrastructure.

Purpose
-------
Owns the single async SQLAlchemy engine and hands out sessions. Every
progress mutation runs inside `get_transaction()`, which commits on success,
rolls back on any exception and guards the database with a circuit breaker.

Responsibilities
----------------
- Create and dispose the `AsyncEngine` (asyncpg for PostgreSQL, aiosqlite
  for local runs and tests)
- Provide `get_session()` for reads and `get_transaction()` for writes
- Support pessimistic row locks (`SELECT ... FOR UPDATE`) on PostgreSQL and
  write-locked transactions (`BEGIN IMMEDIATE`) on SQLite
- Build the schema with `create_all()` for development and tests
- Health check via `SELECT 1`

Non-Responsibilities
--------------------
- Retrying failed transactions (callers decide)
- Schema migrations
- Game rules

Usage Example
-------------
>>> async with DatabaseService.get_transaction() as session:
...     progress = await session.get(PlayerProgressRecord, "player-1", with_for_update=True)
...     progress.total_points += 100
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from src.core.config.config import Config
from src.core.database.base import Base
from src.core.database.circuit_breaker import CircuitBreaker
from src.core.exceptions import CircuitBreakerError
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class DatabaseInitializationError(RuntimeError):
    """Raised when the engine cannot be created."""


class DatabaseNotInitializedError(RuntimeError):
    """Raised when sessions are requested before `initialize()`."""


@dataclass(frozen=True)
class _DatabaseConfigSnapshot:
    """Configuration captured once at engine creation."""

    url: str
    echo: bool
    pool_size: int
    max_overflow: int
    pool_recycle: int
    use_null_pool: bool

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def url_scheme(self) -> str:
        return self.url.split(":", 1)[0] if ":" in self.url else "unknown"


class DatabaseService:
    """
    Centralized async engine and session management.

    All state is class-level; `initialize()` and `shutdown()` are idempotent.
    """

    _engine: Optional[AsyncEngine] = None
    _session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    _config_snapshot: Optional[_DatabaseConfigSnapshot] = None
    _circuit_breaker: Optional[CircuitBreaker] = None
    _init_lock: asyncio.Lock = asyncio.Lock()

    # ========================================================================
    # Lifecycle
    # ========================================================================

    @classmethod
    def _build_config_snapshot(cls, url: Optional[str]) -> _DatabaseConfigSnapshot:
        database_url = url or Config.DATABASE_URL
        if not database_url:
            raise DatabaseInitializationError("DATABASE_URL must be a non-empty string")

        is_sqlite = database_url.startswith("sqlite")
        return _DatabaseConfigSnapshot(
            url=database_url,
            echo=Config.DATABASE_ECHO,
            pool_size=Config.DATABASE_POOL_SIZE,
            max_overflow=Config.DATABASE_MAX_OVERFLOW,
            pool_recycle=Config.DATABASE_POOL_RECYCLE,
            use_null_pool=is_sqlite or Config.is_testing(),
        )

    @staticmethod
    def _install_sqlite_transaction_hooks(engine: AsyncEngine) -> None:
        # The sqlite3 driver defers BEGIN until the first write, which breaks
        # SAVEPOINT handling and lets two readers deadlock on lock upgrade.
        @event.listens_for(engine.sync_engine, "connect")
        def _disable_driver_begin(dbapi_connection: Any, connection_record: Any) -> None:
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def _begin_immediate(conn: Any) -> None:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Create the engine and session factory.

        Parameters
        ----------
        url:
            Overrides `Config.DATABASE_URL`; used by tests.

        Raises
        ------
        DatabaseInitializationError
            If the URL is missing or the engine cannot be created.
        """
        async with cls._init_lock:
            if cls._engine is not None:
                logger.debug("DatabaseService already initialized; skipping")
                return

            try:
                config = cls._build_config_snapshot(url)
                engine_kwargs: dict[str, Any] = {"echo": config.echo}
                if config.use_null_pool:
                    engine_kwargs["poolclass"] = NullPool
                else:
                    engine_kwargs.update(
                        pool_size=config.pool_size,
                        max_overflow=config.max_overflow,
                        pool_recycle=config.pool_recycle,
                        pool_pre_ping=True,
                    )
                if config.is_sqlite:
                    engine_kwargs["connect_args"] = {"timeout": 30}

                engine = create_async_engine(config.url, **engine_kwargs)
                if config.is_sqlite:
                    cls._install_sqlite_transaction_hooks(engine)

                cls._engine = engine
                cls._session_factory = async_sessionmaker(
                    bind=engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                )
                cls._config_snapshot = config
                cls._circuit_breaker = CircuitBreaker()

            except DatabaseInitializationError:
                raise
            except Exception as exc:
                logger.error(
                    "DatabaseService initialization failed",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseInitializationError(
                    f"Database initialization failed: {exc}"
                ) from exc

            logger.info(
                "DatabaseService initialized",
                extra={
                    "url_scheme": config.url_scheme,
                    "null_pool": config.use_null_pool,
                },
            )

    @classmethod
    async def shutdown(cls) -> None:
        """Dispose the engine. Safe to call when not initialized."""
        async with cls._init_lock:
            if cls._engine is None:
                return
            try:
                await cls._engine.dispose()
                logger.info("DatabaseService shutdown complete")
            finally:
                cls._engine = None
                cls._session_factory = None
                cls._config_snapshot = None
                cls._circuit_breaker = None

    @classmethod
    async def create_all(cls) -> None:
        """Create every table registered on `Base.metadata`."""
        import src.database.models  # noqa: F401  registers mappers

        engine = cls._require_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(
            "Database schema ensured",
            extra={"tables": sorted(Base.metadata.tables.keys())},
        )

    @classmethod
    async def drop_all(cls) -> None:
        import src.database.models  # noqa: F401

        engine = cls._require_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    # ========================================================================
    # Health
    # ========================================================================

    @classmethod
    async def health_check(cls) -> bool:
        """Return True if `SELECT 1` succeeds. Never raises."""
        if cls._engine is None:
            logger.warning("Health check called on uninitialized DatabaseService")
            return False

        start = time.perf_counter()
        try:
            async with cls._engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        finally:
            logger.debug(
                "Database health check completed",
                extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
            )

    # ========================================================================
    # Sessions
    # ========================================================================

    @classmethod
    def _require_engine(cls) -> AsyncEngine:
        if cls._engine is None or cls._session_factory is None:
            raise DatabaseNotInitializedError(
                "DatabaseService must be initialized before use. "
                "Call DatabaseService.initialize() during startup."
            )
        return cls._engine

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._engine is not None

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Session without automatic commit, for reads.

        Raises
        ------
        DatabaseNotInitializedError
            If `initialize()` has not run.
        """
        cls._require_engine()
        assert cls._session_factory is not None

        async with cls._session_factory() as session:
            yield session

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Session wrapped in an atomic transaction.

        Commits on success and rolls back on any exception, re-raising it.
        Only `SQLAlchemyError` counts against the circuit breaker; any other
        exception still proves the database answered and counts as a success.

        Raises
        ------
        CircuitBreakerError
            If the circuit is open.
        DatabaseNotInitializedError
            If `initialize()` has not run.
        """
        cls._require_engine()
        assert cls._session_factory is not None
        assert cls._circuit_breaker is not None
        breaker = cls._circuit_breaker

        if not await breaker.allow_request():
            logger.warning("Transaction rejected by circuit breaker")
            raise CircuitBreakerError(
                "database", breaker.consecutive_failures, breaker.retry_after()
            )

        start = time.perf_counter()
        async with cls._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                await breaker.record_failure()
                logger.error(
                    "Database error in transaction; rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )
                raise
            except Exception as exc:
                # Domain errors mean the database answered; close a HALF_OPEN trial.
                await session.rollback()
                await breaker.record_success()
                logger.debug(
                    "Transaction rolled back",
                    extra={"error_type": type(exc).__name__},
                )
                raise
            except BaseException as exc:
                breaker.release_trial()
                await session.rollback()
                logger.debug(
                    "Transaction rolled back",
                    extra={"error_type": type(exc).__name__},
                )
                raise
            else:
                await breaker.record_success()
                logger.debug(
                    "Database transaction committed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )

    @classmethod
    def get_circuit_breaker_metrics(cls) -> dict[str, Any]:
        if cls._circuit_breaker is None:
            return {"state": "not_initialized"}
        metrics = cls._circuit_breaker.get_metrics()
        return {
            "state": metrics.state.value,
            "failure_count": metrics.failure_count,
            "success_count": metrics.success_count,
            "consecutive_failures": metrics.consecutive_failures,
            "total_requests": metrics.total_requests,
            "rejected_requests": metrics.rejected_requests,
        }
