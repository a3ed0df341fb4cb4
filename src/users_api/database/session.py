"""SQLAlchemy async session management for FastAPI."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from users_api.database.connection import check_connection, close_engine, get_engine
from users_api.database.models import Base

logger = logging.getLogger(__name__)

# Global session factory
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory."""
    global _session_factory
    if _session_factory is None:
        engine = get_engine()
        _session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Session factory created")
    return _session_factory


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for a request-scoped session.

    Commits when the block exits normally and rolls back if it raises.

    Usage:
        async with get_session_context() as session:
            user = await session.get(User, user_id)
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables and verify connectivity."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if await check_connection():
        logger.info("Database initialized successfully")
    else:
        logger.warning("Database connection check failed")


async def close_db() -> None:
    """Close database connections and drop the cached session factory."""
    global _session_factory
    try:
        await close_engine()
        _session_factory = None
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")
