# ============================================================================
# Database Connection
# ============================================================================
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional
import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)
from sqlalchemy.orm import DeclarativeBase
from app.config import get_settings

logger = logging.getLogger(__name__)

# Define Base FIRST (models import it)
class Base(DeclarativeBase):
    pass

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker] = None

def _async_url(url: str) -> str:
    # Convert postgresql:// to postgresql+asyncpg://
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url

def get_engine() -> AsyncEngine:
    """
    Return the process-wide engine, creating it on first use.

    pool_pre_ping replaces pooled connections that went stale, so a dropped
    database connection is re-established on the next checkout.
    """
    global _engine
    if _engine is None:
        settings = get_settings()
        database_url = _async_url(settings.DATABASE_URL)
        options = {"echo": settings.DEBUG, "pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            options.update(
                pool_size=settings.DATABASE_POOL_SIZE,
                max_overflow=settings.DATABASE_MAX_OVERFLOW,
            )
        logger.info(
            f"📦 Connecting to database: "
            f"{database_url.split('@')[1] if '@' in database_url else database_url}"
        )
        _engine = create_async_engine(database_url, **options)
    return _engine

def get_session_maker() -> async_sessionmaker:
    global _session_maker
    if _session_maker is None:
        _session_maker = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )
    return _session_maker

async def dispose_engine() -> None:
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_maker = None

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
