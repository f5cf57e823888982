"""
Pydantic schemas for provider synthesis jobs (Replicate predictions).
"""
import enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, field_validator


class JobStatus(str, enum.Enum):
    """Prediction states reported by the provider."""
    starting = 'starting'
    processing = 'processing'
    succeeded = 'succeeded'
    failed = 'failed'
    canceled = 'canceled'


TERMINAL_STATUSES = frozenset({JobStatus.succeeded, JobStatus.failed, JobStatus.canceled})


class SynthesisJob(BaseModel):
    """
    Snapshot of a provider job.

    Only the fields we act on are kept; the provider sends many more.
    """
    model_config = ConfigDict(extra='ignore')

    id: str
    status: JobStatus
    output: Optional[str] = None
    error: Optional[str] = None

    @field_validator('output', mode='before')
    @classmethod
    def _first_output(cls, value: Any) -> Optional[str]:
        # Some models return a list of file URLs instead of a single one
        if isinstance(value, list):
            value = value[0] if value else None
        if value is not None and not isinstance(value, str):
            return None
        return value or None

    @field_validator('error', mode='before')
    @classmethod
    def _stringify_error(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
