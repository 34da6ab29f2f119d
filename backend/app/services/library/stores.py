"""
The two interchangeable track stores behind the playlist.

The session resolver picks one per workspace; the playlist never checks
which backend it is talking to.
"""

import logging
import secrets
from abc import ABC, abstractmethod
from typing import List, Optional

from app.schemas.track import Track, TrackDraft
from app.services.library.fallback import (
    BLOB_PREFIX,
    BlobRegistry,
    LocalFallbackStore,
)
from app.services.library.gateway import RemoteDataGateway
from app.services.library.uploads import UploadedFile
from app.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)

BLOB_ROUTE = "/api/library/blobs"


class TrackStore(ABC):
    """Persistence operations the playlist needs."""

    mode: str

    @abstractmethod
    async def load(self, user_id: str) -> List[Track]:
        """Last persisted snapshot, ordered by position."""

    @abstractmethod
    async def add(
        self, user_id: str, upload: UploadedFile, position: int, current: List[Track]
    ) -> Optional[Track]:
        """Persist a new track; ``current`` is the list it will be appended to."""

    @abstractmethod
    async def delete(self, track: Track, remaining: List[Track]) -> bool:
        """Remove a track; ``remaining`` is the list without it."""

    @abstractmethod
    async def save_positions(self, user_id: str, tracks: List[Track]) -> bool:
        """Persist list order as positions 0..n-1."""

    @abstractmethod
    def playable_url(self, track: Track) -> str:
        """URL the audio element can load."""


class RemoteTrackStore(TrackStore):
    mode = "remote"

    def __init__(self, gateway: RemoteDataGateway):
        self.gateway = gateway

    async def load(self, user_id: str) -> List[Track]:
        return await self.gateway.fetch_tracks(user_id)

    async def add(self, user_id, upload, position, current):
        file_path = await self.gateway.upload_blob(
            user_id, upload.file_name, upload.data, upload.mime_type
        )
        if not file_path:
            return None

        draft = TrackDraft(
            user_id=user_id,
            title=upload.title,
            file_name=upload.file_name,
            file_path=file_path,
            duration=0,
            file_size=upload.size,
            mime_type=upload.mime_type,
            position=position,
        )
        return await self.gateway.insert_track(draft)

    async def delete(self, track, remaining):
        if not await self.gateway.delete_track(track.id):
            return False

        # The row is gone; a leftover blob is only logged
        await self.gateway.delete_blob(track.file_path)
        return True

    async def save_positions(self, user_id, tracks):
        return await self.gateway.update_positions(
            [(track.id, index) for index, track in enumerate(tracks)]
        )

    def playable_url(self, track):
        return self.gateway.public_url(track.file_path)


class LocalTrackStore(TrackStore):
    mode = "local"

    def __init__(self, fallback: LocalFallbackStore, blobs: BlobRegistry):
        self.fallback = fallback
        self.blobs = blobs

    async def load(self, user_id: str) -> List[Track]:
        tracks = await self.fallback.load(user_id)
        return sorted(tracks, key=lambda track: track.position)

    async def add(self, user_id, upload, position, current):
        now = utc_now()
        track = Track(
            id=secrets.token_hex(5)[:9],
            user_id=user_id,
            title=upload.title,
            file_name=upload.file_name,
            file_path=self.blobs.put(upload.data, upload.mime_type),
            duration=0,
            file_size=upload.size,
            mime_type=upload.mime_type,
            position=position,
            created_at=now,
            updated_at=now,
        )
        if not await self.fallback.save(user_id, [*current, track]):
            self.blobs.discard(track.file_path)
            return None
        return track

    async def delete(self, track, remaining):
        if not await self.fallback.save(track.user_id, remaining):
            return False

        self.blobs.discard(track.file_path)
        return True

    async def save_positions(self, user_id, tracks):
        renumbered = [
            track.model_copy(update={"position": index})
            for index, track in enumerate(tracks)
        ]
        return await self.fallback.save(user_id, renumbered)

    def playable_url(self, track):
        if track.file_path.startswith(BLOB_PREFIX):
            return f"{BLOB_ROUTE}/{track.file_path}"
        return track.file_path
