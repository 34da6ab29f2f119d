"""
Local fallback persistence used while the relational schema is missing.

The whole track list of an owner is kept as one JSON string in Redis. Audio
bytes uploaded in this mode are only held in process memory.
"""

import json
import logging
import secrets
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import redis.asyncio as redis

from app.core.redis import get_redis_cache
from app.schemas.track import Track

logger = logging.getLogger(__name__)

FALLBACK_KEY_PREFIX = "myMusicVault_songs"
BLOB_PREFIX = "blob:"


class LocalFallbackStore:
    """One serialized track list per owner under a fixed namespaced key."""

    def __init__(
        self, redis_factory: Callable[[], Awaitable[redis.Redis]] = get_redis_cache
    ):
        self._redis_factory = redis_factory

    @staticmethod
    def key(user_id: str) -> str:
        return f"{FALLBACK_KEY_PREFIX}:{user_id}"

    async def load(self, user_id: str) -> List[Track]:
        """Read back the saved list; an unreadable blob yields an empty list."""
        try:
            cache = await self._redis_factory()
            raw = await cache.get(self.key(user_id))
        except Exception as e:
            logger.error(f"Error reading saved songs for {user_id}: {e}")
            return []

        if not raw:
            return []

        try:
            return [Track(**item) for item in json.loads(raw)]
        except (ValueError, TypeError) as e:
            logger.error(f"Error parsing saved songs for {user_id}: {e}")
            return []

    async def save(self, user_id: str, tracks: List[Track]) -> bool:
        try:
            cache = await self._redis_factory()
            payload = json.dumps([track.model_dump(mode="json") for track in tracks])
            await cache.set(self.key(user_id), payload)
        except Exception as e:
            logger.error(f"Error saving songs for {user_id}: {e}")
            return False

        return True


class BlobRegistry:
    """Process-local audio bytes addressed by ``blob:<hex>`` handles."""

    def __init__(self):
        self._blobs: Dict[str, Tuple[bytes, str]] = {}

    def put(self, data: bytes, content_type: str) -> str:
        handle = f"{BLOB_PREFIX}{secrets.token_hex(16)}"
        self._blobs[handle] = (data, content_type)
        return handle

    def get(self, handle: str) -> Optional[Tuple[bytes, str]]:
        return self._blobs.get(handle)

    def discard(self, handle: str) -> None:
        self._blobs.pop(handle, None)

    def __contains__(self, handle: str) -> bool:
        return handle in self._blobs


transient_blobs = BlobRegistry()
