"""
Bounded history of generated audio.

The log keeps the `limit` most recent entries, newest first. The eviction
policy (select_evictions) is independent of where entries are kept; the
HistoryStore applies it to the SQL table.
"""
import logging
from typing import List, Optional, Sequence, TypeVar

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import HISTORY_LIMIT
from app.models.generation import Generation
from app.services.errors import StorageError
from app.services.storage import AudioStorage

logger = logging.getLogger(__name__)

T = TypeVar('T')


def select_evictions(entries_newest_first: Sequence[T], limit: int) -> List[T]:
    """Entries that fall outside the most recent `limit`, oldest last."""
    if limit < 1:
        raise ValueError('limit must be >= 1')
    return list(entries_newest_first[limit:])


class HistoryStore:
    """
    History log backed by the `generations` table.

    Evicted or deleted entries also have their stored audio removed when a
    storage backend is given. Storage failures are logged; the row still goes.
    """

    def __init__(
        self,
        session: AsyncSession,
        limit: int = HISTORY_LIMIT,
        storage: Optional[AudioStorage] = None,
    ):
        self.session = session
        self.limit = limit
        self.storage = storage

    async def _ordered(self) -> List[Generation]:
        result = await self.session.execute(
            select(Generation).order_by(Generation.created_at.desc(), Generation.seq.desc())
        )
        return list(result.scalars().all())

    async def _remove_objects(self, entries: Sequence[Generation]):
        if self.storage is None:
            return
        for entry in entries:
            if not entry.filename:
                continue
            try:
                await self.storage.delete(entry.filename)
            except StorageError as e:
                logger.warning('Could not delete stored audio %s: %s', entry.filename, e.details)

    async def _evict(self) -> List[Generation]:
        evicted = select_evictions(await self._ordered(), self.limit)
        for old in evicted:
            await self.session.delete(old)
        await self.session.commit()

        if evicted:
            logger.info('Evicted %d history entries', len(evicted))
            await self._remove_objects(evicted)
        return evicted

    async def add(self, entry: Generation) -> List[Generation]:
        """
        Append an entry and evict anything beyond the limit.

        Returns:
            The evicted entries
        """
        self.session.add(entry)
        await self.session.flush()
        return await self._evict()

    async def trim(self) -> List[Generation]:
        """Evict entries beyond the limit, e.g. after HISTORY_LIMIT was lowered."""
        return await self._evict()

    async def entries(self) -> List[Generation]:
        return (await self._ordered())[:self.limit]

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(Generation.id)))
        return result.scalar()

    async def get(self, entry_id: str) -> Optional[Generation]:
        result = await self.session.execute(select(Generation).where(Generation.id == entry_id))
        return result.scalar_one_or_none()

    async def remove(self, entry_id: str) -> bool:
        """Delete one entry. Returns False if it doesn't exist."""
        entry = await self.get(entry_id)
        if entry is None:
            return False

        await self.session.delete(entry)
        await self.session.commit()
        await self._remove_objects([entry])
        return True

    async def clear(self):
        """Delete every entry."""
        entries = await self._ordered()
        await self.session.execute(delete(Generation))
        await self.session.commit()
        await self._remove_objects(entries)
