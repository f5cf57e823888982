"""
Audio object storage backends.

The relocation pipeline only depends on the AudioStorage interface, so the
vendor can be swapped through the STORAGE_BACKEND setting.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional
from urllib.parse import quote

import httpx

from app.config import (
    STORAGE_BACKEND,
    SUPABASE_URL,
    SUPABASE_KEY,
    AUDIO_BUCKET,
    AUDIO_CONTENT_TYPE,
    AUDIO_CACHE_CONTROL,
    MEMORY_STORAGE_BASE_URL,
)
from app.services.errors import StorageError, UploadError

logger = logging.getLogger(__name__)


class AudioStorage(ABC):
    """Capability interface for durable audio storage."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        raise NotImplementedError

    async def start(self):
        """Acquire network resources, if any."""

    async def close(self):
        """Release network resources, if any."""

    @abstractmethod
    async def upload(self, data: bytes, name: str) -> str:
        """Store `data` under `name` without overwriting. Returns the public URL."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def signed_url(self, name: str, ttl: int) -> str:
        """Time-limited URL for `name`, valid for `ttl` seconds."""
        raise NotImplementedError

    @abstractmethod
    def public_url(self, name: str) -> str:
        raise NotImplementedError


class SupabaseStorage(AudioStorage):
    """Supabase Storage over its REST API."""

    def __init__(
        self,
        url: str = SUPABASE_URL,
        key: str = SUPABASE_KEY,
        bucket: str = AUDIO_BUCKET,
        content_type: str = AUDIO_CONTENT_TYPE,
        cache_control: str = AUDIO_CACHE_CONTROL,
        timeout_s: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url.rstrip('/')
        self._key = key
        self.bucket = bucket
        self._content_type = content_type
        self._cache_control = cache_control
        self._timeout = httpx.Timeout(timeout_s, connect=5.0)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def backend_name(self) -> str:
        return 'supabase'

    async def start(self):
        self._client = httpx.AsyncClient(
            base_url=f'{self._url}/storage/v1',
            timeout=self._timeout,
            transport=self._transport,
            headers={
                'Authorization': f'Bearer {self._key}',
                'apikey': self._key,
            },
        )

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _object_path(self, name: str) -> str:
        return f'{quote(self.bucket)}/{quote(name)}'

    def _require_client(self, error_cls) -> httpx.AsyncClient:
        if self._client is None:
            raise error_cls('Storage client is not started')
        return self._client

    @staticmethod
    def _is_duplicate(response: httpx.Response) -> bool:
        if response.status_code == 409:
            return True
        # Storage reports existing objects as 400 with a Duplicate error body
        try:
            body = response.json()
        except ValueError:
            return False
        if not isinstance(body, dict):
            return False
        return str(body.get('statusCode')) == '409' or body.get('error') == 'Duplicate'

    async def upload(self, data: bytes, name: str) -> str:
        client = self._require_client(UploadError)
        logger.info('Uploading %s to bucket %s (%d bytes)', name, self.bucket, len(data))

        try:
            response = await client.post(
                f'/object/{self._object_path(name)}',
                content=data,
                headers={
                    'Content-Type': self._content_type,
                    'cache-control': f'max-age={self._cache_control}',
                    'x-upsert': 'false',
                },
            )
        except httpx.HTTPError as e:
            raise UploadError('Failed to upload audio', details=str(e)) from e

        if self._is_duplicate(response):
            raise UploadError(
                'Failed to upload audio',
                details=f'Object already exists: {name}',
                already_exists=True,
            )
        if response.status_code >= 400:
            raise UploadError(
                'Failed to upload audio',
                details=f'HTTP {response.status_code}: {response.text[:500]}',
            )

        return self.public_url(name)

    async def delete(self, name: str) -> None:
        client = self._require_client(StorageError)
        try:
            response = await client.request(
                'DELETE',
                f'/object/{quote(self.bucket)}',
                json={'prefixes': [name]},
            )
        except httpx.HTTPError as e:
            raise StorageError('Failed to delete audio', details=str(e)) from e

        if response.status_code >= 400:
            raise StorageError(
                'Failed to delete audio',
                details=f'HTTP {response.status_code}: {response.text[:500]}',
            )
        logger.info('Deleted %s from bucket %s', name, self.bucket)

    async def signed_url(self, name: str, ttl: int) -> str:
        client = self._require_client(StorageError)
        try:
            response = await client.post(
                f'/object/sign/{self._object_path(name)}',
                json={'expiresIn': ttl},
            )
        except httpx.HTTPError as e:
            raise StorageError('Failed to create signed URL', details=str(e)) from e

        if response.status_code >= 400:
            raise StorageError(
                'Failed to create signed URL',
                details=f'HTTP {response.status_code}: {response.text[:500]}',
            )

        try:
            signed_path = response.json()['signedURL']
        except (ValueError, KeyError, TypeError) as e:
            raise StorageError('Failed to create signed URL', details='Missing signedURL in response') from e

        return f'{self._url}/storage/v1{signed_path}'

    def public_url(self, name: str) -> str:
        return f'{self._url}/storage/v1/object/public/{self._object_path(name)}'


class MemoryStorage(AudioStorage):
    """
    Process-local storage with the same no-overwrite semantics.

    Objects live only as long as the process; meant for local runs and tests.
    """

    def __init__(self, base_url: str = MEMORY_STORAGE_BASE_URL):
        self._base_url = base_url.rstrip('/')
        self.objects: Dict[str, bytes] = {}

    @property
    def backend_name(self) -> str:
        return 'memory'

    async def upload(self, data: bytes, name: str) -> str:
        if name in self.objects:
            raise UploadError(
                'Failed to upload audio',
                details=f'Object already exists: {name}',
                already_exists=True,
            )
        self.objects[name] = bytes(data)
        return self.public_url(name)

    async def delete(self, name: str) -> None:
        self.objects.pop(name, None)

    async def signed_url(self, name: str, ttl: int) -> str:
        if name not in self.objects:
            raise StorageError('Failed to create signed URL', details=f'Object not found: {name}')
        expires = int(time.time()) + ttl
        return f'{self.public_url(name)}?expires={expires}'

    def public_url(self, name: str) -> str:
        return f'{self._base_url}/{quote(name)}'


def create_storage(backend: str = STORAGE_BACKEND) -> Optional[AudioStorage]:
    """Build the configured storage backend, or None when relocation is off."""
    if backend == 'supabase':
        return SupabaseStorage()
    if backend == 'memory':
        return MemoryStorage()
    return None


# Singleton instance
_storage: Optional[AudioStorage] = None
_storage_initialized = False


def get_storage() -> Optional[AudioStorage]:
    """Get the configured storage backend singleton (None when disabled)."""
    global _storage, _storage_initialized
    if not _storage_initialized:
        _storage = create_storage()
        _storage_initialized = True
    return _storage


def reset_storage():
    """Reset the storage singleton (for testing)."""
    global _storage, _storage_initialized
    _storage = None
    _storage_initialized = False
