from app.db.models.profile import Profile
from app.db.models.song import Song
from app.db.models.playlist import Playlist

__all__ = [
    "Profile",
    "Song",
    "Playlist",
]
