"""
Failure taxonomy for the library services.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Why a lenient operation returned its empty default."""

    BACKEND = "backend"
    SCHEMA_MISSING = "schema_missing"
    VALIDATION = "validation"
    PARTIAL_BATCH = "partial_batch"
    IDENTITY_MISMATCH = "identity_mismatch"


class NotAuthenticatedError(Exception):
    """No valid session; the caller should send the user to sign in."""


class SongNotFoundError(LookupError):
    """The requested track is not in the in-memory playlist."""

    def __init__(self, song_id: str):
        super().__init__(f"Song {song_id} not found")
        self.song_id = song_id


class InvalidOrderError(ValueError):
    """A reorder request that is not a permutation of the current playlist."""
