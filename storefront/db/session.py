"""Async SQLAlchemy engine, session factory and transaction scopes."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from storefront.core.config import Settings

T = TypeVar("T")

Base = declarative_base()

# execution option marking a connection that will write
WRITE_LOCK_OPTION = "storefront_write"


def _configure_sqlite(engine: AsyncEngine) -> None:
    # pysqlite/aiosqlite defer BEGIN until the first DML and mishandle
    # SAVEPOINT; hand transaction control to SQLAlchemy instead.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Write scopes take the RESERVED lock up front; a deferred BEGIN lets two
    # writers both hold SHARED and deadlock on the upgrade ("database is locked").
    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        if conn.get_execution_options().get(WRITE_LOCK_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


class Database:
    """Owns the engine for one application instance."""

    def __init__(self, settings: Settings):
        url = settings.ASYNC_DATABASE_URL
        self.engine: AsyncEngine = create_async_engine(url, echo=settings.DB_ECHO, pool_pre_ping=True)
        if self.engine.dialect.name == "sqlite":
            _configure_sqlite(self.engine)
        self.sessionmaker = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Commit when the block exits normally, roll back on any other exit.

        ``BaseException`` is caught so task cancellation also rolls back.
        """
        async with self.sessionmaker() as session:
            try:
                await session.connection(execution_options={WRITE_LOCK_OPTION: True})
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    @asynccontextmanager
    async def read_transaction(self) -> AsyncIterator[AsyncSession]:
        """Snapshot-consistent read scope that never commits.

        Closing the session releases the connection (rolling back at the
        driver level) and detaches loaded objects without expiring them.
        """
        async with self.sessionmaker() as session:
            yield session

    async def run_in_transaction(self, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Execute an async operation within a managed transaction."""
        async with self.transaction() as session:
            return await operation(session)

    async def create_all(self) -> None:
        # models must be imported so their tables are registered on Base
        import storefront.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
