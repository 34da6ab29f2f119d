"""
Pydantic models for profiles and playlists.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class ProfileRecord(BaseModel):
    """Profile row, or one synthesized from token claims when it can't be saved."""

    id: str
    email: str
    name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PlaylistRecord(BaseModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    is_default: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
