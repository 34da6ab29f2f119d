"""
Which single track is playing, and what plays next.
"""

import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class PlaybackCoordinator:
    """
    Holds at most one playing track id.

    ``order`` returns the current in-memory order of track ids; it is read
    when a track ends, so advancing follows whatever the list looks like
    at that moment.
    """

    def __init__(self, order: Callable[[], List[str]]):
        self._order = order
        self.now_playing: Optional[str] = None

    def toggle(self, song_id: str) -> Optional[str]:
        """Pause the track if it is playing, otherwise switch to it."""
        if self.now_playing == song_id:
            self.now_playing = None
        else:
            self.now_playing = song_id
        return self.now_playing

    def track_ended(self, song_id: str) -> Optional[str]:
        """Advance to the next track, or stop at the end of the list."""
        if song_id != self.now_playing:
            return self.now_playing

        order = self._order()
        try:
            index = order.index(song_id)
        except ValueError:
            self.now_playing = None
            return None

        self.now_playing = order[index + 1] if index + 1 < len(order) else None
        logger.debug(f"Track {song_id} ended, next: {self.now_playing}")
        return self.now_playing

    def forget(self, song_id: str) -> None:
        """Drop the selection if it points at a removed track."""
        if self.now_playing == song_id:
            self.now_playing = None

    def stop(self) -> None:
        self.now_playing = None
