"""
Pydantic models for tracks held in the playlist.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class TrackDraft(BaseModel):
    """Fields supplied when a track is created; the store assigns the rest."""

    user_id: str
    title: str
    file_name: str
    file_path: str
    duration: int = 0
    file_size: Optional[int] = None
    mime_type: str = "audio/mpeg"
    position: int = 0


class Track(TrackDraft):
    """A persisted track, as read from either store."""

    id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TrackWithUrl(Track):
    """Track with its playable URL attached at read time. Never persisted."""

    url: str


class ReorderRequest(BaseModel):
    """Full permutation of the current playlist, by track id."""

    song_ids: List[str]


class UploadFailure(BaseModel):
    file_name: str
    detail: str


class UploadReport(BaseModel):
    """Outcome of one upload batch. Filtered names are never shown as errors."""

    added: List[TrackWithUrl] = Field(default_factory=list)
    filtered: List[str] = Field(default_factory=list)
    failed: List[UploadFailure] = Field(default_factory=list)


class SyncResponse(BaseModel):
    synced: bool
    message: str
