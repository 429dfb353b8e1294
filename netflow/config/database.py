"""
Database engine and session factory.

The engine is created by the entry point and handed to the store;
nothing here holds a process-wide connection.
"""

from loguru import logger
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from netflow.models import Base


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create async engine.

    SQLite connections get WAL journaling so readers are not blocked
    by the single writer.

    Args:
        database_url: Async SQLAlchemy URL
        echo: Log SQL statements

    Returns:
        AsyncEngine
    """
    engine = create_async_engine(database_url, echo=echo)

    if engine.dialect.name == "sqlite" and ":memory:" not in database_url:
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables (checkfirst=True, idempotent)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    logger.info("[DB] Tables ready")
