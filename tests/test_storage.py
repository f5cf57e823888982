"""
Task Group 3: Storage Backend Tests

Tests for the Supabase REST backend and the in-memory backend.
"""
import json

import httpx
import pytest

from app.services.errors import StorageError, UploadError
from app.services.storage import MemoryStorage, SupabaseStorage, create_storage


SUPABASE_URL = 'https://project.supabase.test'


def _supabase(handler) -> SupabaseStorage:
    return SupabaseStorage(
        url=SUPABASE_URL,
        key='service-key',
        bucket='voxvoice',
        transport=httpx.MockTransport(handler),
    )


class TestSupabaseStorage:
    """Tests for SupabaseStorage."""

    @pytest.mark.asyncio
    async def test_upload_sends_no_overwrite_mpeg(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen['method'] = request.method
            seen['path'] = request.url.path
            seen['headers'] = request.headers
            seen['body'] = request.content
            return httpx.Response(200, json={'Key': 'voxvoice/clip.mp3'})

        storage = _supabase(handler)
        await storage.start()
        try:
            url = await storage.upload(b'\xff\xfb' * 10, 'clip.mp3')
        finally:
            await storage.close()

        assert seen['method'] == 'POST'
        assert seen['path'] == '/storage/v1/object/voxvoice/clip.mp3'
        assert seen['headers']['content-type'] == 'audio/mpeg'
        assert seen['headers']['x-upsert'] == 'false'
        assert seen['headers']['apikey'] == 'service-key'
        assert seen['headers']['authorization'] == 'Bearer service-key'
        assert seen['body'] == b'\xff\xfb' * 10
        assert url == f'{SUPABASE_URL}/storage/v1/object/public/voxvoice/clip.mp3'

    @pytest.mark.asyncio
    async def test_upload_duplicate_raises_already_exists(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400,
                json={'statusCode': '409', 'error': 'Duplicate', 'message': 'The resource already exists'},
            )

        storage = _supabase(handler)
        await storage.start()
        try:
            with pytest.raises(UploadError) as exc_info:
                await storage.upload(b'data', 'clip.mp3')
        finally:
            await storage.close()

        assert exc_info.value.already_exists

    @pytest.mark.asyncio
    async def test_upload_server_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text='boom')

        storage = _supabase(handler)
        await storage.start()
        try:
            with pytest.raises(UploadError) as exc_info:
                await storage.upload(b'data', 'clip.mp3')
        finally:
            await storage.close()

        assert not exc_info.value.already_exists
        assert '500' in exc_info.value.details

    @pytest.mark.asyncio
    async def test_delete_sends_prefixes(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen['method'] = request.method
            seen['path'] = request.url.path
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, json=[{'name': 'clip.mp3'}])

        storage = _supabase(handler)
        await storage.start()
        try:
            await storage.delete('clip.mp3')
        finally:
            await storage.close()

        assert seen['method'] == 'DELETE'
        assert seen['path'] == '/storage/v1/object/voxvoice'
        assert seen['body'] == {'prefixes': ['clip.mp3']}

    @pytest.mark.asyncio
    async def test_delete_failure_raises_storage_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={'error': 'Unauthorized'})

        storage = _supabase(handler)
        await storage.start()
        try:
            with pytest.raises(StorageError):
                await storage.delete('clip.mp3')
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_signed_url(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen['path'] = request.url.path
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, json={'signedURL': '/object/sign/voxvoice/clip.mp3?token=abc'})

        storage = _supabase(handler)
        await storage.start()
        try:
            url = await storage.signed_url('clip.mp3', 600)
        finally:
            await storage.close()

        assert seen['path'] == '/storage/v1/object/sign/voxvoice/clip.mp3'
        assert seen['body'] == {'expiresIn': 600}
        assert url == f'{SUPABASE_URL}/storage/v1/object/sign/voxvoice/clip.mp3?token=abc'

    @pytest.mark.asyncio
    async def test_signed_url_missing_field(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={})

        storage = _supabase(handler)
        await storage.start()
        try:
            with pytest.raises(StorageError):
                await storage.signed_url('clip.mp3', 600)
        finally:
            await storage.close()


class TestMemoryStorage:
    """Tests for MemoryStorage."""

    @pytest.mark.asyncio
    async def test_upload_and_public_url(self, memory_storage):
        url = await memory_storage.upload(b'abc', 'clip.mp3')
        assert url == 'https://storage.test/audio/clip.mp3'
        assert memory_storage.objects['clip.mp3'] == b'abc'

    @pytest.mark.asyncio
    async def test_no_overwrite(self, memory_storage):
        await memory_storage.upload(b'original', 'clip.mp3')
        with pytest.raises(UploadError) as exc_info:
            await memory_storage.upload(b'replacement', 'clip.mp3')

        assert exc_info.value.already_exists
        assert memory_storage.objects['clip.mp3'] == b'original'

    @pytest.mark.asyncio
    async def test_delete(self, memory_storage):
        await memory_storage.upload(b'abc', 'clip.mp3')
        await memory_storage.delete('clip.mp3')
        assert 'clip.mp3' not in memory_storage.objects

    @pytest.mark.asyncio
    async def test_signed_url_requires_object(self, memory_storage):
        with pytest.raises(StorageError):
            await memory_storage.signed_url('missing.mp3', 60)

        await memory_storage.upload(b'abc', 'clip.mp3')
        url = await memory_storage.signed_url('clip.mp3', 60)
        assert url.startswith('https://storage.test/audio/clip.mp3?expires=')


class TestStorageFactory:
    """Tests for create_storage."""

    def test_backends(self):
        assert isinstance(create_storage('memory'), MemoryStorage)
        assert isinstance(create_storage('supabase'), SupabaseStorage)
        assert create_storage('none') is None
