"""Database engine and session scopes for requests and CLI tasks."""
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import Settings, get_settings


def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the process-wide engine.

    The pool holds at most DB_POOL_SIZE + DB_MAX_OVERFLOW connections; when all
    are checked out, callers wait for one to be returned.
    """
    return create_async_engine(
        settings.database_url,
        echo=False,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )


engine = build_engine(get_settings())

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    Open a session that commits on normal exit and rolls back on any exception.

    Services only flush; this is the single place where work is committed.
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """FastAPI dependency yielding one session per request."""
    async with session_scope() as session:
        yield session
