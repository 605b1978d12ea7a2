# src/arenarank/db/session.py

"""In-memory store engine and session management."""
import logging
import os

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .models import Base

logger = logging.getLogger(__name__)

# Store URL from environment variable, in-memory SQLite by default
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")


def create_store_engine(url: str | None = None) -> AsyncEngine:
    """Create the async engine backing one arena.

    An in-memory SQLite database only lives as long as its connection, so
    the aiosqlite dialect keeps a single shared connection (StaticPool) for
    ``:memory:`` URLs. Pool settings are only configured for other databases.
    """
    url = url or DATABASE_URL
    echo = os.getenv("DB_ECHO", "false").lower() == "true"

    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
        pool_pre_ping=True,
        echo=echo,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a configured session factory bound to ``engine``.

    autoflush=False: changes reach the store only on explicit flush/commit.
    expire_on_commit=False: rows stay readable after commit so read models
    can be built from them.
    """
    return async_sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


async def init_store(engine: AsyncEngine) -> None:
    """Create every table on a fresh store."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.debug("Store tables created", extra={"url": str(engine.url)})
