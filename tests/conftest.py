"""
Pytest fixtures for testing.
"""
import json
import random
from typing import AsyncGenerator, Callable, List
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.models import Base
from app.database import get_db
from app.services.pirate import Emotion, VoiceParameters
from app.services.replicate_client import ReplicateClient
from app.services.storage import MemoryStorage, get_storage, reset_storage
from app.services.voice_generator import (
    GenerationResult,
    VoiceGenerator,
    get_voice_generator,
    reset_voice_generator,
)


REPLICATE_URL = 'https://replicate.test'
AUDIO_URL = 'https://replicate.delivery/pbxt/abc/output.mp3'


@pytest.fixture
def test_db_url(tmp_path):
    """Generate a per-test database URL."""
    return f'sqlite+aiosqlite:///{tmp_path / "test.db"}'


@pytest_asyncio.fixture
async def test_engine(test_db_url):
    """Create a test database engine."""
    engine = create_async_engine(test_db_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def memory_storage():
    """Empty in-memory storage backend."""
    return MemoryStorage(base_url='https://storage.test/audio')


@pytest.fixture
def fake_sleep():
    """Async sleep replacement that records requested delays."""
    return AsyncMock(return_value=None)


class FakeReplicate:
    """
    Scripted Replicate API for httpx.MockTransport.

    `statuses` is the sequence of prediction bodies returned by successive
    GET /v1/predictions/{id} calls; the last one repeats.
    """

    def __init__(self, statuses: List[dict], job_id: str = 'job-123'):
        self.job_id = job_id
        self.statuses = statuses
        self.submissions: List[dict] = []
        self.polls = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == 'POST' and request.url.path.endswith('/predictions'):
            self.submissions.append(json.loads(request.content))
            return httpx.Response(201, json={'id': self.job_id, 'status': 'starting'})

        if request.method == 'GET' and request.url.path == f'/v1/predictions/{self.job_id}':
            index = min(self.polls, len(self.statuses) - 1)
            self.polls += 1
            return httpx.Response(200, json={'id': self.job_id, **self.statuses[index]})

        return httpx.Response(404, json={'detail': 'not found'})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def make_replicate_client(fake_sleep) -> Callable[..., ReplicateClient]:
    """Factory for a ReplicateClient backed by a FakeReplicate script."""
    def _make(fake: FakeReplicate, **kwargs) -> ReplicateClient:
        kwargs.setdefault('max_attempts', 30)
        kwargs.setdefault('poll_interval_s', 2.0)
        return ReplicateClient(
            api_token='r8_test',
            base_url=REPLICATE_URL,
            transport=fake.transport,
            sleep=fake_sleep,
            **kwargs,
        )
    return _make


@pytest.fixture
def seeded_rng():
    return random.Random(1234)


@pytest.fixture
def mock_voice_generator():
    """Mock generator returning a fixed successful result."""
    generator = MagicMock(spec=VoiceGenerator)
    generator.client = MagicMock()
    generator.client.model = 'minimax/speech-02-hd'
    generator.relocation_enabled = True
    generator.generate = AsyncMock(return_value=GenerationResult(
        url=AUDIO_URL,
        pirate_text='Ahoy there Hello ye',
        original_text='Hello you',
        intensity=2,
        parameters=VoiceParameters(emotion=Emotion.neutral, pitch=0.9, speed=0.9),
        persisted_url='https://storage.test/audio/pirate-voice-1.mp3',
        filename='pirate-voice-1.mp3',
    ))
    return generator


@pytest_asyncio.fixture
async def client(test_engine, mock_voice_generator, memory_storage):
    """Create a test client with mocked dependencies."""
    reset_voice_generator()
    reset_storage()

    from server import app

    test_session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with test_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_voice_generator] = lambda: mock_voice_generator
    app.dependency_overrides[get_storage] = lambda: memory_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as client:
        yield client

    app.dependency_overrides.clear()
    reset_voice_generator()
    reset_storage()


@pytest.fixture
def replicate_script() -> Callable[..., FakeReplicate]:
    """Factory for scripted Replicate fakes."""
    return FakeReplicate
