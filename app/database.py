"""
Async database setup for the generation history (SQLAlchemy + aiosqlite).
"""
import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import text

from app.config import DATABASE_URL, HISTORY_LIMIT, ensure_directories
from app.models import Base, Generation
from app.services.history import HistoryStore
from app.services.storage import AudioStorage

logger = logging.getLogger(__name__)


engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def enable_wal_mode():
    """Enable WAL mode so history reads don't block the writer."""
    if engine.dialect.name != 'sqlite':
        return
    async with engine.begin() as conn:
        await conn.execute(text('PRAGMA journal_mode=WAL'))
        await conn.execute(text('PRAGMA synchronous=NORMAL'))


async def init_db():
    """Create the history table if it doesn't exist."""
    ensure_directories()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await enable_wal_mode()


async def prune_history(
    storage: Optional[AudioStorage] = None,
    limit: int = HISTORY_LIMIT,
    session_factory: async_sessionmaker = async_session_factory,
) -> List[Generation]:
    """
    Apply the history limit to rows written under an earlier, larger limit.

    Runs once at startup, after storage is open, so evicted audio is deleted too.
    """
    async with session_factory() as session:
        evicted = await HistoryStore(session, limit=limit, storage=storage).trim()
    if evicted:
        logger.info('Pruned %d history entries above the limit of %d', len(evicted), limit)
    return evicted


async def close_db():
    """Close database connections."""
    await engine.dispose()


async def get_db():
    """
    Dependency that provides an async database session.

    Commits on success, rolls back if the request handler raised.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
