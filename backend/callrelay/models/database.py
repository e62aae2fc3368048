"""Database configuration and session management.

This module provides:
- Async SQLAlchemy engine configuration with connection pooling
- Session factory for database operations
- Table creation on startup
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool
from callrelay.config.settings import settings

logger = logging.getLogger(__name__)

DB_POOL_SIZE = 10
DB_POOL_MAX_OVERFLOW = 20

DATABASE_URL = settings.database_url


def _engine_options(url: str) -> dict:
    # SQLite (tests, local runs) gets no shared pool
    if url.startswith("sqlite"):
        return {"poolclass": NullPool}
    return {
        "pool_pre_ping": True,
        "pool_size": DB_POOL_SIZE,
        "max_overflow": DB_POOL_MAX_OVERFLOW,
    }


# Create async engine
engine = create_async_engine(
    DATABASE_URL,
    echo=settings.DEBUG,
    future=True,
    **_engine_options(DATABASE_URL)
)

# Create async session factory
AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Base class for models
Base = declarative_base()

# Tables written by the relay; users, bookings and provider_services belong
# to the marketplace API
OWNED_TABLES = frozenset({"call_logs"})


async def init_db(bind: Optional[AsyncEngine] = None, include_mirrors: Optional[bool] = None):
    """Initialize database by creating the tables this service owns.

    The read-only marketplace mirrors are created too only when
    include_mirrors (default: DB_CREATE_MIRROR_TABLES) is set.
    Safe to call multiple times (idempotent operation).
    """
    bind = bind or engine
    if include_mirrors is None:
        include_mirrors = settings.DB_CREATE_MIRROR_TABLES

    tables = None
    if not include_mirrors:
        tables = [t for name, t in Base.metadata.tables.items() if name in OWNED_TABLES]

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=tables)
    logger.info("Database tables initialized successfully")
