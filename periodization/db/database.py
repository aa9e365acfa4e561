"""Database connection and session management."""
import logging
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from periodization.config.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def create_primary_engine(url: str | None = None) -> AsyncEngine:
    """Create the database engine.

    Pool sizing only applies to server databases; SQLite uses its own pool.
    """
    url = url or settings.database_url
    options: dict = {"echo": settings.debug, "future": True}
    if make_url(url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=30,
            pool_recycle=300,
            pool_pre_ping=True,
        )
    return create_async_engine(url, **options)


engine = create_primary_engine()

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


async def get_db() -> AsyncIterator[AsyncSession]:
    """Dependency that provides a request-scoped database session.

    Work left in an open transaction by the request (reads that autobegan,
    nested unit-of-work calls) is committed once the handler returns.
    """
    async with async_session_maker() as session:
        try:
            yield session
            if session.in_transaction():
                await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(bind: AsyncEngine | None = None):
    """Create all tables that do not exist yet."""
    # Import models so they register on Base.metadata
    import periodization.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_database_health() -> bool:
    """Run a trivial query against the primary database."""
    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return False


async def close_all_engines():
    """Dispose the engine and its pooled connections."""
    await engine.dispose()
