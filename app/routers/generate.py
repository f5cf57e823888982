"""
Voice generation endpoint.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.generation import Generation
from app.schemas.generation import GenerateVoiceRequest, GenerateVoiceResponse, ErrorResponse
from app.services.errors import StorageError, VoiceGenerationError
from app.services.history import HistoryStore
from app.services.storage import AudioStorage, get_storage
from app.services.voice_generator import VoiceGenerator, get_voice_generator

logger = logging.getLogger(__name__)

router = APIRouter(tags=['generate'])

ERROR_RESPONSES = {
    400: {'model': ErrorResponse, 'description': 'Invalid text or intensity'},
    408: {'model': ErrorResponse, 'description': 'Voice generation timed out'},
    500: {'model': ErrorResponse, 'description': 'Synthesis or relocation failed'},
}


async def _discard_audio(storage: Optional[AudioStorage], filename: Optional[str]):
    """Delete relocated audio that no history entry will reference."""
    if storage is None or not filename:
        return
    try:
        await storage.delete(filename)
    except StorageError as e:
        logger.warning('Could not delete orphaned audio %s: %s', filename, e.details)


@router.post(
    '/generate-voice',
    response_model=GenerateVoiceResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
async def generate_voice(
    request: GenerateVoiceRequest,
    generator: VoiceGenerator = Depends(get_voice_generator),
    storage: Optional[AudioStorage] = Depends(get_storage),
    db: AsyncSession = Depends(get_db),
):
    """
    Transform text into pirate speak and synthesize it.

    Blocks until the provider job finishes (up to the poll ceiling), relocates
    the audio when storage is configured, and records the clip in history.
    If the history write fails the relocated object is deleted and a 500 is
    returned, so no audio is left without an entry.
    """
    try:
        result = await generator.generate(request.text, request.intensity)
    except VoiceGenerationError as e:
        return JSONResponse(status_code=e.status_code, content=e.to_dict())
    except Exception as e:
        logger.exception('Voice generation failed')
        return JSONResponse(
            status_code=500,
            content={'error': 'Failed to generate pirate voice', 'details': str(e)},
        )

    entry = Generation(
        text=result.original_text,
        pirate_text=result.pirate_text,
        intensity=result.intensity,
        source_url=result.url,
        persisted_url=result.persisted_url,
        filename=result.filename,
        duration=result.duration,
    )
    try:
        await HistoryStore(db, storage=storage).add(entry)
    except Exception as e:
        logger.exception('Recording generation in history failed')
        await db.rollback()
        await _discard_audio(storage, result.filename)
        return JSONResponse(
            status_code=500,
            content={'error': 'Failed to record generation', 'details': str(e)},
        )

    return GenerateVoiceResponse(
        url=result.url,
        pirate_text=result.pirate_text,
        original_text=result.original_text,
        intensity=result.intensity,
        persisted_url=result.persisted_url,
        filename=result.filename,
        duration=result.duration,
        history_id=entry.id,
    )
