"""
Health check endpoint.
"""
from typing import Optional
from pydantic import BaseModel
from fastapi import APIRouter, Depends

from app.config import APP_VERSION, HISTORY_LIMIT
from app.services.storage import AudioStorage, get_storage
from app.services.voice_generator import VoiceGenerator, get_voice_generator


router = APIRouter(tags=['health'])


class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str
    version: str
    model: str
    storage_backend: str
    relocation_enabled: bool
    history_limit: int


@router.get('/health', response_model=HealthResponse)
async def health_check(
    generator: VoiceGenerator = Depends(get_voice_generator),
    storage: Optional[AudioStorage] = Depends(get_storage),
) -> HealthResponse:
    """
    Check server health status.

    Reports configuration only; does not call the provider or storage.
    """
    return HealthResponse(
        status='ok',
        version=APP_VERSION,
        model=generator.client.model,
        storage_backend=storage.backend_name if storage else 'none',
        relocation_enabled=generator.relocation_enabled,
        history_limit=HISTORY_LIMIT,
    )
