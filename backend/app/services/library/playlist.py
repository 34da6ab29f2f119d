"""
In-memory ordered playlist for one signed-in user.

The list held here is the source of truth while the workspace lives. Every
change schedules a debounced write of the full order to the active store;
a change inside the quiet period cancels the pending write and starts a new
one, so only the last order of a burst is persisted. The write reads the
list when it fires, not when it was scheduled.
"""

import asyncio
import logging
from typing import List, Optional

from app.core.config import POSITION_SYNC_DELAY
from app.schemas.track import Track, TrackWithUrl
from app.services.library.errors import InvalidOrderError, SongNotFoundError
from app.services.library.playback import PlaybackCoordinator
from app.services.library.stores import TrackStore
from app.services.library.uploads import UploadedFile

logger = logging.getLogger(__name__)


class PlaylistStateMachine:
    """Ordered tracks of one owner plus the debounced order persistence."""

    def __init__(
        self,
        user_id: str,
        store: TrackStore,
        tracks: Optional[List[Track]] = None,
        sync_delay: float = POSITION_SYNC_DELAY,
    ):
        self.user_id = user_id
        self.store = store
        self.sync_delay = sync_delay
        self._tracks: List[Track] = list(tracks or [])
        self._pending_sync: Optional[asyncio.Task] = None
        self.playback = PlaybackCoordinator(lambda: [t.id for t in self._tracks])

    @property
    def tracks(self) -> List[Track]:
        return list(self._tracks)

    @property
    def sync_pending(self) -> bool:
        return self._pending_sync is not None and not self._pending_sync.done()

    def __len__(self) -> int:
        return len(self._tracks)

    def find(self, song_id: str) -> Optional[Track]:
        return next((t for t in self._tracks if t.id == song_id), None)

    def with_url(self, track: Track) -> TrackWithUrl:
        return TrackWithUrl(**track.model_dump(), url=self.store.playable_url(track))

    def with_urls(self) -> List[TrackWithUrl]:
        """Current order with playable URLs derived on the fly."""
        return [self.with_url(track) for track in self._tracks]

    async def append(self, upload: UploadedFile) -> Optional[Track]:
        """
        Persist an upload through the active store and add it at the end.

        Returns the new track, or None when the store failed.
        """
        track = await self.store.add(
            self.user_id, upload, len(self._tracks), self.tracks
        )
        if track is None:
            return None

        self._tracks.append(track)
        self.schedule_sync()
        return track

    async def remove(self, song_id: str) -> bool:
        """
        Delete a track from the store and from memory.

        Positions of the remaining tracks are left as they are until the
        next order sync.

        Raises:
            SongNotFoundError: If the track is not in the playlist
        """
        track = self.find(song_id)
        if track is None:
            raise SongNotFoundError(song_id)

        remaining = [t for t in self._tracks if t.id != song_id]
        if not await self.store.delete(track, remaining):
            return False

        self._tracks = [t for t in self._tracks if t.id != song_id]
        self.playback.forget(song_id)
        self.schedule_sync()
        return True

    def reorder(self, song_ids: List[str]) -> List[Track]:
        """
        Replace the order with a permutation of the current track ids.

        Raises:
            InvalidOrderError: If the ids are not exactly the current tracks
        """
        by_id = {t.id: t for t in self._tracks}
        if len(song_ids) != len(by_id) or set(song_ids) != set(by_id):
            raise InvalidOrderError("Order must list every song exactly once")

        self._tracks = [by_id[song_id] for song_id in song_ids]
        self.schedule_sync()
        return self.tracks

    def move(self, from_index: int, to_index: int) -> List[Track]:
        """Drag one track from one slot to another."""
        count = len(self._tracks)
        if not (0 <= from_index < count and 0 <= to_index < count):
            raise InvalidOrderError("Index out of range")

        ids = [t.id for t in self._tracks]
        ids.insert(to_index, ids.pop(from_index))
        return self.reorder(ids)

    def schedule_sync(self) -> None:
        """(Re)start the quiet period before the order is written."""
        self.cancel_pending_sync()
        if not self._tracks:
            return
        self._pending_sync = asyncio.create_task(self._sync_after_delay())

    def cancel_pending_sync(self) -> None:
        if self.sync_pending:
            self._pending_sync.cancel()
        self._pending_sync = None

    async def _sync_after_delay(self) -> None:
        await asyncio.sleep(self.sync_delay)
        await self._write_positions()

    async def sync_positions_now(self) -> bool:
        """
        Write the current order immediately.

        A debounced write that is already pending is left alone and may
        land afterwards; each row keeps whichever update arrives last.
        """
        return await self._write_positions()

    async def _write_positions(self) -> bool:
        snapshot = self.tracks
        ok = await self.store.save_positions(self.user_id, snapshot)
        if not ok:
            logger.error(f"Failed to sync playlist order for {self.user_id}")
            return False

        positions = {track.id: index for index, track in enumerate(snapshot)}
        self._tracks = [
            track.model_copy(update={"position": positions[track.id]})
            if track.id in positions
            else track
            for track in self._tracks
        ]
        logger.info(f"Synced {len(snapshot)} song positions for {self.user_id}")
        return True

    def close(self) -> None:
        """Drop all state; a pending write is cancelled."""
        self.cancel_pending_sync()
        self._tracks = []
        self.playback.stop()
