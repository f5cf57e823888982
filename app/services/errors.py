"""
Error taxonomy for the voice generation pipeline.

Each error carries the HTTP status it maps to plus a human-readable message and
optional details, so routers can render `{error, details?}` bodies directly.
"""
from typing import Optional


class VoiceGenerationError(Exception):
    """Base error for every failure surfaced to API callers."""
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {'error': self.message}
        if self.details:
            body['details'] = self.details
        return body


class ValidationError(VoiceGenerationError):
    """Bad input. Raised before any external call is made."""
    status_code = 400


class SynthesisTimeoutError(VoiceGenerationError):
    """The provider job never reached a terminal status in time."""
    status_code = 408


class SynthesisError(VoiceGenerationError):
    """The provider reported a failure or could not be reached."""


class SynthesisCanceledError(SynthesisError):
    """The provider job was canceled."""


class MissingOutputError(SynthesisError):
    """The job succeeded but carried no usable audio URL."""


class RelocationError(VoiceGenerationError):
    """Copying provider audio into durable storage failed."""


class DownloadError(RelocationError):
    """Fetching audio from the provider delivery URL failed."""


class UploadError(RelocationError):
    """Writing audio to the storage bucket failed."""

    def __init__(self, message: str, details: Optional[str] = None, already_exists: bool = False):
        super().__init__(message, details)
        self.already_exists = already_exists


class StorageError(VoiceGenerationError):
    """A storage operation other than upload (delete, signing) failed."""
