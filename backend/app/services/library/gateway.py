"""
Remote data gateway over the relational store and the object storage bucket.

Every operation catches its own failures, logs them, and returns an empty
default (None, False or []). ``last_error`` records the kind of the most
recent failure, or None after a success, for callers that need to tell
"empty" from "failed". Session work runs in a worker thread, so a slow
round-trip suspends only the operation awaiting it.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.db.models import Playlist, Profile, Song
from app.schemas.profile import PlaylistRecord, ProfileRecord
from app.schemas.track import Track, TrackDraft
from app.services.backend.storage import StorageClient
from app.services.library.errors import ErrorKind
from app.utils.datetime_helper import epoch_millis

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("profiles", "songs")
UNDEFINED_TABLE_PGCODE = "42P01"
DEFAULT_PLAYLIST_NAME = "My Music"

T = TypeVar("T")

# Columns a caller may change through update_track
UPDATABLE_SONG_FIELDS = {
    "title",
    "file_name",
    "file_path",
    "duration",
    "file_size",
    "mime_type",
    "position",
}


def is_missing_table(error: Exception) -> bool:
    """True when a database error means the schema was never provisioned."""
    orig = getattr(error, "orig", None)
    if getattr(orig, "pgcode", None) == UNDEFINED_TABLE_PGCODE:
        return True
    text = str(error).lower()
    return "no such table" in text or (
        "relation" in text and "does not exist" in text
    )


def storage_key(owner_id: str, file_name: str, millis: Optional[int] = None) -> str:
    """Object key ``{owner}/{epoch-ms}.{ext}``; ext is whatever follows the last dot."""
    extension = file_name.split(".")[-1]
    return f"{owner_id}/{millis if millis is not None else epoch_millis()}.{extension}"


class RemoteDataGateway:
    """CRUD over profiles, songs and playlists plus blob storage."""

    def __init__(
        self, session_factory: Callable[[], Session], storage: StorageClient
    ):
        self._session_factory = session_factory
        self.storage = storage
        self.last_error: Optional[ErrorKind] = None

    def _ok(self) -> None:
        self.last_error = None

    def _fail(self, action: str, error: Exception) -> None:
        if isinstance(error, SQLAlchemyError) and is_missing_table(error):
            self.last_error = ErrorKind.SCHEMA_MISSING
            logger.warning(
                f"{action}: tables don't exist yet, run the database migrations"
            )
        else:
            self.last_error = ErrorKind.BACKEND
        logger.error(f"Error {action}: {error}")


    async def _run(self, work: Callable[[Session], T]) -> T:
        """Run blocking session work in a worker thread with a fresh session."""

        def in_session() -> T:
            with self._session_factory() as db:
                return work(db)

        return await run_in_threadpool(in_session)

    async def schema_ready(self) -> bool:
        """Probe whether the profiles and songs tables exist."""

        def missing_tables(db: Session) -> List[str]:
            inspector = inspect(db.get_bind())
            return [t for t in REQUIRED_TABLES if not inspector.has_table(t)]

        try:
            missing = await self._run(missing_tables)
        except Exception as e:
            self._fail("checking database schema", e)
            return False

        if missing:
            self.last_error = ErrorKind.SCHEMA_MISSING
            logger.warning(f"Database schema missing tables: {', '.join(missing)}")
            return False

        self._ok()
        return True

    # Profiles

    async def fetch_profile(self, user_id: str) -> Optional[ProfileRecord]:
        def fetch(db: Session) -> Optional[ProfileRecord]:
            profile = db.get(Profile, user_id)
            return ProfileRecord.model_validate(profile) if profile else None

        try:
            record = await self._run(fetch)
        except SQLAlchemyError as e:
            self._fail(f"fetching profile {user_id}", e)
            return None

        self._ok()
        return record

    async def insert_profile(self, profile: ProfileRecord) -> Optional[ProfileRecord]:
        def insert(db: Session) -> ProfileRecord:
            row = Profile(id=profile.id, email=profile.email, name=profile.name)
            db.add(row)
            db.commit()
            db.refresh(row)
            return ProfileRecord.model_validate(row)

        try:
            record = await self._run(insert)
        except SQLAlchemyError as e:
            self._fail(f"creating profile {profile.id}", e)
            return None

        self._ok()
        logger.info(f"Created profile {record.id}")
        return record

    async def update_profile(self, user_id: str, updates: Dict[str, Any]) -> bool:
        def update(db: Session) -> None:
            profile = db.get(Profile, user_id)
            if profile is not None:
                for field in ("email", "name"):
                    if field in updates:
                        setattr(profile, field, updates[field])
                db.commit()

        try:
            await self._run(update)
        except SQLAlchemyError as e:
            self._fail(f"updating profile {user_id}", e)
            return False

        self._ok()
        return True

    # Playlists

    async def insert_default_playlist(self, user_id: str) -> Optional[PlaylistRecord]:
        def insert(db: Session) -> PlaylistRecord:
            row = Playlist(user_id=user_id, name=DEFAULT_PLAYLIST_NAME, is_default=True)
            db.add(row)
            db.commit()
            db.refresh(row)
            return PlaylistRecord.model_validate(row)

        try:
            record = await self._run(insert)
        except SQLAlchemyError as e:
            self._fail(f"creating default playlist for {user_id}", e)
            return None

        self._ok()
        return record

    async def fetch_playlists(self, user_id: str) -> List[PlaylistRecord]:
        def fetch(db: Session) -> List[PlaylistRecord]:
            rows = db.scalars(
                select(Playlist)
                .where(Playlist.user_id == user_id)
                .order_by(Playlist.created_at.asc())
            ).all()
            return [PlaylistRecord.model_validate(row) for row in rows]

        try:
            records = await self._run(fetch)
        except SQLAlchemyError as e:
            self._fail(f"fetching playlists for {user_id}", e)
            return []

        self._ok()
        return records

    async def fetch_default_playlist(self, user_id: str) -> Optional[PlaylistRecord]:
        def fetch(db: Session) -> Optional[PlaylistRecord]:
            row = db.scalars(
                select(Playlist).where(
                    Playlist.user_id == user_id, Playlist.is_default.is_(True)
                )
            ).first()
            return PlaylistRecord.model_validate(row) if row else None

        try:
            record = await self._run(fetch)
        except SQLAlchemyError as e:
            self._fail(f"fetching default playlist for {user_id}", e)
            return None

        self._ok()
        return record

    # Songs

    async def fetch_tracks(self, user_id: str) -> List[Track]:
        """Tracks of one owner, ordered by position ascending."""

        def fetch(db: Session) -> List[Track]:
            rows = db.scalars(
                select(Song)
                .where(Song.user_id == user_id)
                .order_by(Song.position.asc())
            ).all()
            return [Track.model_validate(row) for row in rows]

        try:
            tracks = await self._run(fetch)
        except SQLAlchemyError as e:
            self._fail(f"fetching songs for {user_id}", e)
            return []

        self._ok()
        return tracks

    async def insert_track(self, draft: TrackDraft) -> Optional[Track]:
        def insert(db: Session) -> Track:
            row = Song(**draft.model_dump())
            db.add(row)
            db.commit()
            db.refresh(row)
            return Track.model_validate(row)

        try:
            track = await self._run(insert)
        except SQLAlchemyError as e:
            self._fail(f"adding song {draft.file_name}", e)
            return None

        self._ok()
        return track

    async def delete_track(self, song_id: str) -> bool:
        def delete(db: Session) -> None:
            song = db.get(Song, song_id)
            if song is not None:
                db.delete(song)
                db.commit()

        try:
            await self._run(delete)
        except SQLAlchemyError as e:
            self._fail(f"deleting song {song_id}", e)
            return False

        self._ok()
        return True

    async def update_track(self, song_id: str, updates: Dict[str, Any]) -> bool:
        unknown = set(updates) - UPDATABLE_SONG_FIELDS
        if unknown:
            self.last_error = ErrorKind.VALIDATION
            logger.error(f"Error updating song {song_id}: unknown fields {sorted(unknown)}")
            return False

        def update(db: Session) -> None:
            song = db.get(Song, song_id)
            if song is not None:
                for field, value in updates.items():
                    setattr(song, field, value)
                db.commit()

        try:
            await self._run(update)
        except SQLAlchemyError as e:
            self._fail(f"updating song {song_id}", e)
            return False

        self._ok()
        return True
    async def update_positions(self, positions: Sequence[Tuple[str, int]]) -> bool:
        """
        Write each (id, position) pair as its own update.

        Succeeds only when every update succeeds. Updates that went through
        before a failure are kept.
        """
        results = [
            await self.update_track(song_id, {"position": position})
            for song_id, position in positions
        ]

        if all(results):
            self._ok()
            return True

        failed = results.count(False)
        self.last_error = ErrorKind.PARTIAL_BATCH
        logger.error(
            f"Error updating song positions: {failed} of {len(results)} updates failed"
        )
        return False

    # Storage

    async def upload_blob(
        self, owner_id: str, file_name: str, data: bytes, content_type: str
    ) -> Optional[str]:
        """Upload audio under a derived key and return the key."""
        key = storage_key(owner_id, file_name)
        try:
            await self.storage.upload(key, data, content_type)
        except Exception as e:
            self._fail(f"uploading file {file_name}", e)
            return None

        self._ok()
        return key

    async def delete_blob(self, key: str) -> bool:
        try:
            await self.storage.remove([key])
        except Exception as e:
            self._fail(f"deleting file {key}", e)
            return False

        self._ok()
        return True

    def public_url(self, key: str) -> str:
        return self.storage.public_url(key)
