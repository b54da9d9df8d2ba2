from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from fastapi import Request

from typing import AsyncIterator
import logging

from app.core.errors import AppError


Base = declarative_base()


logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # card_tags relies on ON DELETE CASCADE, which SQLite ignores by default
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(connection_string: str, *, echo: bool = False) -> AsyncEngine:
    """Build the process engine (connection pool) for a DSN."""
    if connection_string.startswith("sqlite"):
        engine = create_async_engine(
            connection_string, echo=echo, poolclass=NullPool
        )
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        connection_string,
        echo=echo,
        pool_pre_ping=True,
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        expire_on_commit=False,
    )


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_maker: async_sessionmaker[AsyncSession] = request.app.state.session_maker
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            # Client and not-found errors are expected outcomes, not faults
            if isinstance(e, AppError) and e.status_code < 500:
                logger.debug(f"Session rolled back: {e!r}")
            else:
                logger.error(f"Session rolled back due to error: {e}")
            raise
