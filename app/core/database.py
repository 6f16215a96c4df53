# ============================================================================
# Database Connection
# ============================================================================
from functools import lru_cache
import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from app.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _async_url(database_url: str) -> str:
    # postgresql:// -> postgresql+asyncpg://
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


@lru_cache()
def get_engine() -> AsyncEngine:
    """Create the application engine on first use"""
    settings = get_settings()
    database_url = _async_url(settings.DATABASE_URL)
    logger.info(f"Connecting to database: {database_url.split('@')[1] if '@' in database_url else database_url}")

    return create_async_engine(
        database_url,
        echo=settings.DEBUG,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )


@lru_cache()
def get_session_maker() -> async_sessionmaker:
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )


async def init_models() -> None:
    """Create all tables (called once from the application lifespan)"""
    # Register every model on Base.metadata
    import app.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
