"""Database connection and session management"""
import os
from typing import AsyncGenerator, Optional
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import sessionmaker
import structlog

logger = structlog.get_logger(__name__)

# Lazy initialization - engine created on first use
_engine: Optional[AsyncEngine] = None
_async_session_maker: Optional[sessionmaker] = None


def _get_database_url() -> str:
    """Get and normalize DATABASE_URL"""
    url = os.getenv("DATABASE_URL", "")

    if not url:
        raise RuntimeError(
            "DATABASE_URL environment variable is not set. "
            "Please configure it in your .env file."
        )

    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://") and "+asyncpg" not in url:
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return url


def get_engine() -> AsyncEngine:
    """Get or create the async engine (lazy initialization)"""
    global _engine

    if _engine is None:
        url = _get_database_url()
        kwargs = {
            "echo": os.getenv("DEBUG", "false").lower() == "true",
            "pool_pre_ping": True,
        }
        if url.startswith("postgresql+asyncpg://"):
            # statement_cache_size=0 is required behind pgbouncer/Supabase pooler
            kwargs.update(
                pool_size=5,
                max_overflow=10,
                connect_args={
                    "statement_cache_size": 0,
                    "server_settings": {"application_name": "petbook-health-access"},
                },
            )
        _engine = create_async_engine(url, **kwargs)

    return _engine


def get_session_maker() -> sessionmaker:
    """Get or create the session maker (lazy initialization)"""
    global _async_session_maker

    if _async_session_maker is None:
        _async_session_maker = sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )

    return _async_session_maker


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Create tables if they do not exist"""
    import asyncio

    # Register every table on SQLModel.metadata
    import domain.models  # noqa: F401

    engine = engine or get_engine()

    max_retries = 5
    retry_delay = 2  # seconds

    for attempt in range(1, max_retries + 1):
        try:
            logger.info("database_connect_attempt", attempt=attempt, max_retries=max_retries)
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
            logger.info("database_initialized")
            return
        except Exception as e:
            if attempt < max_retries:
                logger.warning("database_connect_failed", attempt=attempt, error=str(e), retry_in=retry_delay)
                await asyncio.sleep(retry_delay)
                retry_delay *= 2  # Exponential backoff
            else:
                logger.error("database_connect_gave_up", attempts=max_retries, error=str(e))
                raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session"""
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
