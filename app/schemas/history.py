"""
Pydantic schemas for the generation history API.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class HistoryEntryResponse(BaseModel):
    """One history entry."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    text: str
    pirate_text: str = Field(..., alias='pirateText')
    intensity: int
    source_url: str = Field(..., alias='sourceUrl')
    persisted_url: Optional[str] = Field(None, alias='persistedUrl')
    filename: Optional[str] = None
    created_at: datetime = Field(..., alias='timestamp')
    duration: Optional[float] = None


class HistoryListResponse(BaseModel):
    """History entries, newest first."""
    entries: List[HistoryEntryResponse]
    total: int
    limit: int


class SignedUrlResponse(BaseModel):
    """Time-limited URL for a stored clip."""
    model_config = ConfigDict(populate_by_name=True)

    url: str
    expires_in: int = Field(..., alias='expiresIn')
