"""
Async SQLAlchemy engine + session factory for the relational store.

The engine is created once at import and disposed at shutdown. Request
handlers get a scoped session through `get_db`; the activity feed opens
extra sessions from `get_session_factory` so its sources can read in
parallel.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from gamefeed.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    # SQLite (tests, local runs) has no server-side pool to tune
    if url.startswith("sqlite"):
        return {"echo": False}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "isolation_level": settings.db_isolation_level,
        "echo": False,
    }


engine = create_async_engine(settings.db_url, **_engine_kwargs(settings.db_url))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def init_db() -> None:
    """Create all tables if they don't exist (idempotent)."""
    # Register mapped classes on Base.metadata
    import gamefeed.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")


async def dispose_db() -> None:
    """Release every pooled connection."""
    await engine.dispose()
    logger.info("Database connections closed")


async def get_db():
    """FastAPI dependency that yields an async DB session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker:
    """FastAPI dependency exposing the session factory itself."""
    return AsyncSessionLocal
