"""
Client for the Replicate predictions API.

Submits speech synthesis jobs and polls them until they reach a terminal status.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from app.config import (
    AUDIO_BITRATE,
    REPLICATE_API_TOKEN,
    REPLICATE_BASE_URL,
    REPLICATE_MODEL,
    REPLICATE_VOICE_ID,
    REPLICATE_TIMEOUT_S,
    POLL_INTERVAL_S,
    POLL_MAX_ATTEMPTS,
    POLL_BACKOFF,
    POLL_MAX_INTERVAL_S,
)
from app.schemas.job import JobStatus, SynthesisJob
from app.services.errors import (
    MissingOutputError,
    SynthesisCanceledError,
    SynthesisError,
    SynthesisTimeoutError,
)
from app.services.pirate import VoiceParameters

logger = logging.getLogger(__name__)

# Fixed audio encoding for every request
AUDIO_SETTINGS = {
    'volume': 1,
    'bitrate': AUDIO_BITRATE,
    'channel': 'mono',
    'sample_rate': 32000,
    'language_boost': 'English',
    'english_normalization': True,
}


class ReplicateClient:
    """
    Thin async wrapper around the Replicate prediction endpoints.

    Call start() before use and close() when done. The poll policy defaults to
    the values in app.config; `sleep` is injectable so tests don't wait.
    """

    def __init__(
        self,
        api_token: str = REPLICATE_API_TOKEN,
        model: str = REPLICATE_MODEL,
        base_url: str = REPLICATE_BASE_URL,
        voice_id: str = REPLICATE_VOICE_ID,
        timeout_s: float = REPLICATE_TIMEOUT_S,
        poll_interval_s: float = POLL_INTERVAL_S,
        max_attempts: int = POLL_MAX_ATTEMPTS,
        backoff: float = POLL_BACKOFF,
        max_interval_s: float = POLL_MAX_INTERVAL_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._api_token = api_token
        self._model = model
        self._base_url = base_url.rstrip('/')
        self._voice_id = voice_id
        self._timeout = httpx.Timeout(timeout_s, connect=5.0)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        self.poll_interval_s = poll_interval_s
        self.max_attempts = max_attempts
        self.backoff = max(1.0, backoff)
        self.max_interval_s = max_interval_s
        self._sleep = sleep

    @property
    def model(self) -> str:
        return self._model

    async def start(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                'Authorization': f'Bearer {self._api_token}',
                'Content-Type': 'application/json',
            },
        )

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    def build_input(self, text: str, params: VoiceParameters) -> dict:
        """Build the model input for one synthesis request."""
        return {
            'text': text,
            **params.to_input(),
            'voice_id': self._voice_id,
            **AUDIO_SETTINGS,
        }

    async def _request(self, method: str, path: str, **kwargs) -> SynthesisJob:
        if self._client is None:
            raise SynthesisError('Speech provider client is not started')

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise SynthesisError('Speech provider request failed', details=str(e)) from e

        if response.status_code >= 400:
            raise SynthesisError(
                'Speech provider rejected the request',
                details=f'HTTP {response.status_code}: {response.text[:500]}',
            )

        try:
            return SynthesisJob.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise SynthesisError('Speech provider returned an invalid job', details=str(e)) from e

    async def submit(self, text: str, params: VoiceParameters) -> SynthesisJob:
        """Create a prediction. Returns the job with its id and initial status."""
        job = await self._request(
            'POST',
            f'/v1/models/{self._model}/predictions',
            json={'input': self.build_input(text, params)},
        )
        logger.info('Prediction created: %s status=%s', job.id, job.status.value)
        return job

    async def get_job(self, job_id: str) -> SynthesisJob:
        """Fetch the current state of a prediction."""
        return await self._request('GET', f'/v1/predictions/{job_id}')

    async def wait_for_completion(self, job_id: str) -> Optional[SynthesisJob]:
        """
        Poll a job until it reaches a terminal status.

        Returns:
            The terminal job, or None if max_attempts checks never saw one.
        """
        interval = self.poll_interval_s
        for attempt in range(1, self.max_attempts + 1):
            job = await self.get_job(job_id)
            logger.debug('Job %s attempt %d: status=%s', job_id, attempt, job.status.value)

            if job.is_terminal:
                return job

            if attempt < self.max_attempts:
                await self._sleep(interval)
                interval = min(interval * self.backoff, self.max_interval_s)

        return None

    async def synthesize(self, text: str, params: VoiceParameters) -> str:
        """
        Submit a job and wait for its audio URL.

        Raises:
            SynthesisTimeoutError: No terminal status within the poll ceiling
            SynthesisCanceledError: The job was canceled
            SynthesisError: The job failed or the provider could not be reached
            MissingOutputError: The job succeeded without an output URL
        """
        job = await self.submit(text, params)
        completed = await self.wait_for_completion(job.id)

        if completed is None:
            logger.warning('Job %s timed out after %d attempts', job.id, self.max_attempts)
            raise SynthesisTimeoutError('Voice generation timed out. Please try again.')

        if completed.status == JobStatus.failed:
            logger.error('Job %s failed: %s', job.id, completed.error)
            raise SynthesisError('Voice generation failed', details=completed.error)

        if completed.status == JobStatus.canceled:
            logger.warning('Job %s was canceled', job.id)
            raise SynthesisCanceledError('Voice generation was canceled')

        if not completed.output:
            logger.error('Job %s succeeded without output', job.id)
            raise MissingOutputError('Voice generation did not complete successfully')

        logger.info('Job %s succeeded: %s', job.id, completed.output)
        return completed.output
