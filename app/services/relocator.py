"""
Copies provider-hosted audio into durable storage.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Optional

import httpx

from app.config import AUDIO_BITRATE, DOWNLOAD_TIMEOUT_S, RELOCATE_RETRIES
from app.services.errors import DownloadError, UploadError
from app.services.storage import AudioStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelocatedAudio:
    """Where the audio ended up after relocation."""
    persisted_url: str
    filename: str
    size_bytes: int

    @property
    def duration(self) -> float:
        """Clip length in seconds, from the size at the fixed constant bitrate."""
        return round(self.size_bytes * 8 / AUDIO_BITRATE, 2)


def make_filename(prefix: str = 'pirate-voice', extension: str = 'mp3') -> str:
    """Collision-resistant object name: millisecond timestamp plus a random suffix."""
    return f'{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.{extension}'


class AudioRelocator:
    """
    Downloads audio from a delivery URL and uploads it to an AudioStorage.

    `retries` extra attempts are made for the download and for the upload. An
    upload rejected because the object already exists is never retried.
    """

    def __init__(
        self,
        storage: AudioStorage,
        timeout_s: float = DOWNLOAD_TIMEOUT_S,
        retries: int = RELOCATE_RETRIES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.storage = storage
        self._timeout = httpx.Timeout(timeout_s, connect=5.0)
        self._retries = max(0, retries)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self):
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        )
        await self.storage.start()

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
        await self.storage.close()

    async def _download_once(self, source_url: str) -> bytes:
        if self._client is None:
            raise DownloadError('Failed to download audio', details='Download client is not started')

        try:
            response = await self._client.get(source_url)
        except httpx.HTTPError as e:
            raise DownloadError('Failed to download audio', details=str(e)) from e

        if not response.is_success:
            raise DownloadError(
                'Failed to download audio',
                details=f'HTTP {response.status_code} {response.reason_phrase}',
            )
        return response.content

    async def download(self, source_url: str) -> bytes:
        """Fetch the audio bytes from the provider."""
        for attempt in range(self._retries + 1):
            try:
                return await self._download_once(source_url)
            except DownloadError as e:
                if attempt >= self._retries:
                    raise
                logger.warning('Download attempt %d failed (%s), retrying', attempt + 1, e.details)

    async def upload(self, data: bytes, filename: str) -> str:
        """Upload bytes to storage. Returns the public URL."""
        for attempt in range(self._retries + 1):
            try:
                return await self.storage.upload(data, filename)
            except UploadError as e:
                if e.already_exists or attempt >= self._retries:
                    raise
                logger.warning('Upload attempt %d failed (%s), retrying', attempt + 1, e.details)

    async def relocate(self, source_url: str, filename: Optional[str] = None) -> RelocatedAudio:
        """
        Copy audio from `source_url` into storage.

        Args:
            source_url: Provider delivery URL
            filename: Object name (generated when omitted)

        Returns:
            RelocatedAudio with the durable URL

        Raises:
            DownloadError: The source could not be fetched
            UploadError: The upload failed or the name is taken
        """
        filename = filename or make_filename()

        data = await self.download(source_url)
        logger.info('Downloaded %d bytes from %s', len(data), source_url)

        persisted_url = await self.upload(data, filename)
        logger.info('Relocated audio to %s', persisted_url)

        return RelocatedAudio(persisted_url=persisted_url, filename=filename, size_bytes=len(data))
