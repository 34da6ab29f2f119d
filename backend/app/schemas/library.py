"""
Response models for the library and player endpoints.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from app.schemas.profile import ProfileRecord
from app.schemas.track import TrackWithUrl


class LibraryResponse(BaseModel):
    """Everything the playlist view needs after the session is resolved."""

    profile: ProfileRecord
    storage_mode: Literal["remote", "local"]
    songs: List[TrackWithUrl] = Field(default_factory=list)
    now_playing: Optional[str] = None


class DatabaseStatusResponse(BaseModel):
    status: Literal["ready", "missing"]


class PlayerState(BaseModel):
    now_playing: Optional[str] = None
