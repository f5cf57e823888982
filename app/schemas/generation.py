"""
Pydantic schemas for the voice generation API.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class GenerateVoiceRequest(BaseModel):
    """
    Request body for POST /generate-voice.

    Fields are loosely typed on purpose: range and presence checks happen in
    validate_request so every failure gets the same 400 error body.
    """
    text: Any = Field(None, description='Text to transform and synthesize (1-500 characters)')
    intensity: Any = Field(None, description='Pirate intensity 1-10 (default 5)')


class GenerateVoiceResponse(BaseModel):
    """Successful generation."""
    model_config = ConfigDict(populate_by_name=True)

    url: str
    pirate_text: str = Field(..., alias='pirateText')
    original_text: str = Field(..., alias='originalText')
    intensity: int
    persisted_url: Optional[str] = Field(None, alias='persistedUrl')
    filename: Optional[str] = None
    duration: Optional[float] = Field(None, description='Clip length in seconds, when the audio was relocated')
    history_id: Optional[str] = Field(None, alias='historyId')


class ErrorResponse(BaseModel):
    """Error body shared by every failure."""
    error: str
    details: Optional[str] = None
