"""
Generation model for the history of produced audio.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, Integer, Float
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Generation(Base):
    """
    A successfully generated pirate voice clip.

    Attributes:
        seq: Insertion counter (autoincrement), breaks created_at ties
        id: Public entry identifier (UUID)
        text: The original input text
        pirate_text: The transformed text sent for synthesis
        intensity: Intensity used for the transformation (1-10)
        source_url: Provider delivery URL (short-lived)
        persisted_url: Durable storage URL, if the audio was relocated
        filename: Object name in the storage bucket, if relocated
        created_at: When the clip was generated (UTC)
        duration: Clip length in seconds; set only for relocated audio,
            estimated from the stored size at the fixed bitrate
    """
    __tablename__ = 'generations'

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, nullable=False, index=True, default=lambda: str(uuid.uuid4()))
    text = Column(Text, nullable=False)
    pirate_text = Column(Text, nullable=False)
    intensity = Column(Integer, nullable=False)
    source_url = Column(Text, nullable=False)
    persisted_url = Column(Text, nullable=True)
    filename = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    duration = Column(Float, nullable=True)

    def __repr__(self):
        return f'<Generation {self.id} intensity={self.intensity}>'
