"""
Database configuration and session management.
Uses the SQLAlchemy async engine; PostgreSQL (asyncpg) in production,
SQLite (aiosqlite) for local development and tests.
"""
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from tubely.config import Settings
from tubely.models.base import Base


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database."""
    url = settings.database_url
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            # One shared connection, otherwise every session sees an empty DB
            kwargs["poolclass"] = StaticPool
        return create_async_engine(url, echo=False, **kwargs)

    return create_async_engine(
        url,
        echo=False,  # Disable SQLAlchemy query logging
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def get_db(request: Request) -> AsyncSession:
    """
    Dependency for FastAPI routes to get database session.
    Usage: db: AsyncSession = Depends(get_db)
    """
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(engine: AsyncEngine):
    """
    Initialize database: create tables.
    Called on application startup.
    """
    from tubely.models.user import User  # noqa: F401
    from tubely.models.video import Video  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
