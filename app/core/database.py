from typing import AsyncIterator

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from app.core.config import settings

logger = structlog.get_logger(__name__)

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    future=True,
    pool_pre_ping=True,
    pool_recycle=300,
)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()


async def init_db():
    """Check the database connection and register all models."""
    # Imported for its side effect of registering tables on Base.metadata
    import app.models  # noqa: F401

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            # No migration tool; create missing tables on startup
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database connection initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database", exc_info=e)
        raise


async def get_db() -> AsyncIterator[AsyncSession]:
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error("Database session error", exc_info=e)
            raise
        finally:
            await session.close()
