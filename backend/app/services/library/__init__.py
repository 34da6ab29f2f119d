"""
Library services package initialization.
"""

from app.services.library.errors import (
    ErrorKind,
    InvalidOrderError,
    NotAuthenticatedError,
    SongNotFoundError,
)
from app.services.library.fallback import (
    BlobRegistry,
    LocalFallbackStore,
    transient_blobs,
)
from app.services.library.gateway import RemoteDataGateway
from app.services.library.intake import UploadIntake
from app.services.library.playback import PlaybackCoordinator
from app.services.library.playlist import PlaylistStateMachine
from app.services.library.session import (
    Identity,
    LibraryWorkspace,
    SessionResolver,
)
from app.services.library.stores import LocalTrackStore, RemoteTrackStore, TrackStore
from app.services.library.uploads import UploadedFile

__all__ = [
    "ErrorKind",
    "InvalidOrderError",
    "NotAuthenticatedError",
    "SongNotFoundError",
    "BlobRegistry",
    "LocalFallbackStore",
    "transient_blobs",
    "RemoteDataGateway",
    "UploadIntake",
    "PlaybackCoordinator",
    "PlaylistStateMachine",
    "Identity",
    "LibraryWorkspace",
    "SessionResolver",
    "LocalTrackStore",
    "RemoteTrackStore",
    "TrackStore",
    "UploadedFile",
]
