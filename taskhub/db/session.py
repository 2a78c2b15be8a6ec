"""
Database session and engine configuration.

This file sets up the async database connection using SQLAlchemy.
PostgreSQL (asyncpg) in production, SQLite (aiosqlite) in tests.
"""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from taskhub.core.config import settings


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL."""
    if database_url.startswith("sqlite"):
        # One connection per session keeps SQLite usable across event loops
        return create_async_engine(database_url, echo=echo, poolclass=NullPool)
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Keeps data accessible after commit
    )


# Create the async database engine
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Sessions are used to interact with the database (read, write, update, delete)
async_session_maker = build_session_factory(engine)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session.

    The factory comes from app.state so tests can point the app at their
    own database. The session is automatically closed when the request is done.
    """
    factory = getattr(request.app.state, "session_factory", async_session_maker)
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

