"""
Pydantic schemas for API request/response validation.
"""
from app.schemas.generation import GenerateVoiceRequest, GenerateVoiceResponse, ErrorResponse
from app.schemas.history import HistoryEntryResponse, HistoryListResponse, SignedUrlResponse
from app.schemas.job import JobStatus, SynthesisJob

__all__ = [
    'GenerateVoiceRequest',
    'GenerateVoiceResponse',
    'ErrorResponse',
    'HistoryEntryResponse',
    'HistoryListResponse',
    'SignedUrlResponse',
    'JobStatus',
    'SynthesisJob',
]
