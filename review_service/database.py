"""Async SQLAlchemy engine lifecycle for the review service.

:class:`Database` owns the engine (and with it the connection pool) and an
explicit readiness state:

``UNINITIALIZED`` -> ``READY`` on a successful initialization,
``UNINITIALIZED``/``READY`` -> ``DEGRADED`` when the store is missing or
unreachable, and ``DEGRADED`` -> ``READY`` once a later reinitialization
succeeds. Requests never see a half-initialized store: :meth:`session`
refuses to hand out a session unless the state is ``READY``.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy import event
from sqlalchemy.exc import ArgumentError, InvalidRequestError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from review_service.models import Base
from review_service.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

MISSING_URL_REASON = "DATABASE_URL is not configured"
UNUSABLE_URL_REASON = "DATABASE_URL is unusable"


class StoreState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DEGRADED = "degraded"


def _configure_sqlite_connection(dbapi_connection: Any, _record: Any) -> None:
    # The driver's implicit BEGIN is replaced by _begin_immediate.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(conn: Any) -> None:
    # Deferred transactions deadlock when two writers both hold a read lock
    # and try to upgrade it; take the write lock up front instead.
    conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Connection pool plus readiness state for the durable store."""

    def __init__(
        self,
        url: Optional[str],
        *,
        init_attempts: int = 3,
        retry_delay: float = 2.0,
        echo: bool = False,
    ) -> None:
        self.url = url
        self.init_attempts = max(1, init_attempts)
        self.retry_delay = retry_delay
        self.echo = echo

        self.state = StoreState.UNINITIALIZED
        self.reason: Optional[str] = None
        self.engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self.state is StoreState.READY

    def _create_engine(self) -> AsyncEngine:
        engine = create_async_engine(self.url, echo=self.echo, pool_pre_ping=True)
        if engine.dialect.name == "sqlite":
            event.listen(engine.sync_engine, "connect", _configure_sqlite_connection)
            event.listen(engine.sync_engine, "begin", _begin_immediate)
        return engine

    def _degrade(self, reason: str) -> None:
        if self.state is not StoreState.DEGRADED or self.reason != reason:
            logger.error("Review store degraded: %s", reason)
        self.state = StoreState.DEGRADED
        self.reason = reason

    async def initialize(self, attempts: Optional[int] = None) -> StoreState:
        """Create the engine and the schema, retrying a bounded number of times.

        Never raises for connection or configuration problems; the outcome is
        reflected in :attr:`state`.
        """
        if not self.url:
            self._degrade(MISSING_URL_REASON)
            return self.state

        attempts = attempts or self.init_attempts
        async with self._lock:
            if self.state is StoreState.READY:
                return self.state

            if self.engine is None:
                try:
                    self.engine = self._create_engine()
                except (ArgumentError, InvalidRequestError, ImportError) as exc:
                    # Retrying cannot fix a bad URL or a missing driver.
                    logger.error("Cannot create review store engine: %s", exc)
                    self._degrade(f"{UNUSABLE_URL_REASON} ({type(exc).__name__})")
                    return self.state
                self._session_factory = async_sessionmaker(
                    bind=self.engine, expire_on_commit=False
                )

            for attempt in range(1, attempts + 1):
                try:
                    async with self.engine.begin() as conn:
                        await conn.run_sync(Base.metadata.create_all)
                except (SQLAlchemyError, OSError) as exc:
                    self.reason = type(exc).__name__
                    logger.warning(
                        "Review store initialization failed (%d/%d): %s",
                        attempt,
                        attempts,
                        exc,
                    )
                    if attempt < attempts:
                        await asyncio.sleep(self.retry_delay)
                    continue

                self.state = StoreState.READY
                self.reason = None
                logger.info("Review store ready (%s).", self.engine.dialect.name)
                return self.state

            self._degrade(self.reason or "initialization failed")
            return self.state

    async def ensure_ready(self) -> None:
        """Make one reinitialization attempt if needed, else raise."""
        if self.state is StoreState.READY:
            return
        await self.initialize(attempts=1)
        if self.state is not StoreState.READY:
            raise StoreUnavailableError()

    def mark_degraded(self, reason: str) -> None:
        self._degrade(reason)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session bound to the pool; the store must be usable."""
        await self.ensure_ready()
        async with self._session_factory() as session:
            yield session

    async def dispose(self) -> None:
        """Close every pooled connection. Safe to call more than once."""
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Review store connection pool closed.")
        self.engine = None
        self._session_factory = None
        self.state = StoreState.UNINITIALIZED

    def status(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"store": self.state.value}
        if self.reason:
            payload["reason"] = self.reason
        return payload
