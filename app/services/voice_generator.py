"""
Voice generation pipeline: validate, transform, synthesize, relocate.
"""
import asyncio
import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Optional

from app.config import (
    MAX_TEXT_LENGTH,
    MIN_INTENSITY,
    MAX_INTENSITY,
    DEFAULT_INTENSITY,
    MAX_INFLIGHT_JOBS,
    PIRATE_TRANSFORM_ENABLED,
    RELOCATION_REQUIRED,
)
from app.services.errors import RelocationError, ValidationError
from app.services.pirate import VoiceParameters, get_voice_parameters, transform_to_pirate_speak
from app.services.relocator import AudioRelocator
from app.services.replicate_client import ReplicateClient
from app.services.storage import get_storage

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    """Outcome of one successful generation."""
    url: str
    pirate_text: str
    original_text: str
    intensity: int
    parameters: VoiceParameters
    persisted_url: Optional[str] = None
    filename: Optional[str] = None
    duration: Optional[float] = None


def validate_request(text: Any, intensity: Any = None, max_length: int = MAX_TEXT_LENGTH) -> tuple:
    """
    Check raw request values.

    Returns:
        Tuple of (trimmed_text, intensity)

    Raises:
        ValidationError: Missing or empty text, text too long, or intensity
            outside MIN_INTENSITY..MAX_INTENSITY
    """
    if not isinstance(text, str) or not text.strip():
        raise ValidationError('Text is required')

    trimmed = text.strip()
    if len(trimmed) > max_length:
        raise ValidationError(
            'Text is too long',
            details=f'Maximum length is {max_length} characters, got {len(trimmed)}',
        )

    if intensity is None:
        intensity = DEFAULT_INTENSITY
    # bool is an int subclass; reject it along with floats like 5.5, inf and nan
    if isinstance(intensity, bool) or not isinstance(intensity, (int, float)):
        raise ValidationError('Intensity must be a whole number', details=f'Got {intensity!r}')
    if isinstance(intensity, float) and not (math.isfinite(intensity) and intensity.is_integer()):
        raise ValidationError('Intensity must be a whole number', details=f'Got {intensity!r}')

    intensity = int(intensity)
    if not MIN_INTENSITY <= intensity <= MAX_INTENSITY:
        raise ValidationError(
            'Intensity out of range',
            details=f'Intensity must be between {MIN_INTENSITY} and {MAX_INTENSITY}, got {intensity}',
        )

    return trimmed, intensity


class VoiceGenerator:
    """
    Orchestrates one generation per call.

    States: validating -> submitting -> polling -> relocating (optional) -> done.
    A semaphore bounds how many provider jobs run at once in this process.
    """

    def __init__(
        self,
        client: ReplicateClient,
        relocator: Optional[AudioRelocator] = None,
        rng: Optional[random.Random] = None,
        max_inflight: int = MAX_INFLIGHT_JOBS,
        relocation_required: bool = RELOCATION_REQUIRED,
        transform_enabled: bool = PIRATE_TRANSFORM_ENABLED,
    ):
        self.client = client
        self.relocator = relocator
        self._rng = rng or random.Random()
        self._semaphore = asyncio.Semaphore(max(1, max_inflight))
        self.relocation_required = relocation_required
        self.transform_enabled = transform_enabled

    @property
    def relocation_enabled(self) -> bool:
        return self.relocator is not None

    async def start(self):
        await self.client.start()
        if self.relocator:
            await self.relocator.start()

    async def stop(self):
        await self.client.close()
        if self.relocator:
            await self.relocator.close()

    async def generate(self, text: Any, intensity: Any = None) -> GenerationResult:
        """
        Run the whole pipeline for one request.

        Raises:
            VoiceGenerationError subclasses; see app.services.errors
        """
        logger.debug('validating request')
        trimmed, intensity = validate_request(text, intensity)

        if self.transform_enabled:
            pirate_text = transform_to_pirate_speak(trimmed, intensity, rng=self._rng)
        else:
            pirate_text = trimmed
        params = get_voice_parameters(intensity)

        async with self._semaphore:
            logger.info(
                'submitting: intensity=%d emotion=%s pitch=%.1f speed=%.1f',
                intensity, params.emotion.value, params.pitch, params.speed,
            )
            url = await self.client.synthesize(pirate_text, params)

        result = GenerationResult(
            url=url,
            pirate_text=pirate_text,
            original_text=text,
            intensity=intensity,
            parameters=params,
        )

        if self.relocator is not None:
            logger.info('relocating %s', url)
            try:
                relocated = await self.relocator.relocate(url)
            except RelocationError as e:
                if self.relocation_required:
                    raise
                logger.warning('Relocation failed, returning provider URL: %s (%s)', e.message, e.details)
            else:
                result.persisted_url = relocated.persisted_url
                result.filename = relocated.filename
                result.duration = relocated.duration

        return result


def create_voice_generator() -> VoiceGenerator:
    """Build a generator wired to the configured provider and storage."""
    storage = get_storage()
    relocator = AudioRelocator(storage) if storage is not None else None
    return VoiceGenerator(client=ReplicateClient(), relocator=relocator)


# Singleton instance
_voice_generator: Optional[VoiceGenerator] = None


def get_voice_generator() -> VoiceGenerator:
    """
    Get the voice generator singleton instance.

    Usage with FastAPI dependency injection:
        @router.post('/generate-voice')
        async def generate(generator: VoiceGenerator = Depends(get_voice_generator)):
            ...
    """
    global _voice_generator
    if _voice_generator is None:
        _voice_generator = create_voice_generator()
    return _voice_generator


def reset_voice_generator():
    """Reset the voice generator singleton (for testing)."""
    global _voice_generator
    _voice_generator = None
