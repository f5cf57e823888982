"""
Generation history endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import HISTORY_LIMIT, SIGNED_URL_TTL_S
from app.database import get_db
from app.schemas.history import HistoryEntryResponse, HistoryListResponse, SignedUrlResponse
from app.services.errors import StorageError
from app.services.history import HistoryStore
from app.services.storage import AudioStorage, get_storage


router = APIRouter(prefix='/history', tags=['history'])


def get_history_store(
    db: AsyncSession = Depends(get_db),
    storage: Optional[AudioStorage] = Depends(get_storage),
) -> HistoryStore:
    return HistoryStore(db, limit=HISTORY_LIMIT, storage=storage)


@router.get('', response_model=HistoryListResponse)
async def list_history(history: HistoryStore = Depends(get_history_store)) -> HistoryListResponse:
    """
    List recent generations, newest first.

    At most HISTORY_LIMIT entries are kept; older ones are evicted on insert.
    """
    entries = await history.entries()
    return HistoryListResponse(
        entries=[HistoryEntryResponse.model_validate(e) for e in entries],
        total=await history.count(),
        limit=history.limit,
    )


@router.get('/{entry_id}', response_model=HistoryEntryResponse)
async def get_history_entry(
    entry_id: str,
    history: HistoryStore = Depends(get_history_store),
) -> HistoryEntryResponse:
    """Get a single history entry."""
    entry = await history.get(entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail=f'History entry not found: {entry_id}')
    return HistoryEntryResponse.model_validate(entry)


@router.get('/{entry_id}/signed-url', response_model=SignedUrlResponse)
async def get_signed_url(
    entry_id: str,
    ttl: int = Query(default=SIGNED_URL_TTL_S, ge=1, le=7 * 24 * 3600),
    history: HistoryStore = Depends(get_history_store),
):
    """
    Create a time-limited URL for a stored clip.

    Raises:
        404: Entry not found or its audio was never relocated
        503: No storage backend configured
    """
    if history.storage is None:
        raise HTTPException(status_code=503, detail='Audio storage is not configured')

    entry = await history.get(entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail=f'History entry not found: {entry_id}')
    if not entry.filename:
        raise HTTPException(status_code=404, detail='Audio for this entry is not stored')

    try:
        url = await history.storage.signed_url(entry.filename, ttl)
    except StorageError as e:
        return JSONResponse(status_code=e.status_code, content=e.to_dict())

    return SignedUrlResponse(url=url, expires_in=ttl)


@router.delete('/{entry_id}', status_code=204)
async def delete_history_entry(
    entry_id: str,
    history: HistoryStore = Depends(get_history_store),
):
    """Delete one entry and its stored audio."""
    if not await history.remove(entry_id):
        raise HTTPException(status_code=404, detail=f'History entry not found: {entry_id}')


@router.delete('', status_code=204)
async def clear_history(history: HistoryStore = Depends(get_history_store)):
    """Delete every entry and its stored audio."""
    await history.clear()
