from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool
from skuld.core.config import settings
import logging

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    """Pool options for the configured backend"""
    kwargs = {"echo": settings.SQL_ECHO}
    if url.startswith("sqlite"):
        return kwargs
    kwargs["pool_pre_ping"] = True
    if settings.ENVIRONMENT == "test":
        kwargs["poolclass"] = NullPool
    else:
        kwargs["pool_size"] = 10
        kwargs["max_overflow"] = 20
    return kwargs


# Async engine for application use
async_engine = create_async_engine(
    settings.async_database_url,
    **_engine_kwargs(settings.async_database_url)
)

# Async session for application
AsyncSessionLocal = sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)

Base = declarative_base()


# Async dependency for application endpoints
async def get_async_db() -> AsyncSession:
    """Yield an async database session for endpoints."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            logger.error(f"Database error: {e}")
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_tables():
    """Create all tables (development only - production schemas are provisioned up front)"""
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
