"""
Session/identity resolution and the per-user library workspaces.

A workspace is built the first time a user's token reaches the library:
the profile is fetched (or provisioned), the active store is chosen once,
and the persisted tracks are loaded into a playlist. The workspace then
follows session changes until it is torn down.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from app.core.security import display_name_from_claims, verify_token
from app.schemas.profile import ProfileRecord
from app.services.backend.events import (
    AuthEvent,
    AuthEventBus,
    AuthEventKind,
    Subscription,
)
from app.services.library.errors import ErrorKind, NotAuthenticatedError
from app.services.library.fallback import BlobRegistry, LocalFallbackStore
from app.services.library.gateway import RemoteDataGateway
from app.services.library.intake import UploadIntake
from app.services.library.playlist import PlaylistStateMachine
from app.services.library.stores import LocalTrackStore, RemoteTrackStore, TrackStore
from app.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)


@dataclass
class Identity:
    """Who the access token belongs to."""

    id: str
    email: str
    name: str
    access_token: str

    @classmethod
    def from_token(cls, token: str) -> "Identity":
        try:
            claims = verify_token(token)
        except ValueError as e:
            raise NotAuthenticatedError(str(e))

        return cls(
            id=claims["sub"],
            email=claims.get("email") or "",
            name=display_name_from_claims(claims),
            access_token=token,
        )

    def synthesized_profile(self) -> ProfileRecord:
        now = utc_now()
        return ProfileRecord(
            id=self.id, email=self.email, name=self.name, created_at=now, updated_at=now
        )


@dataclass
class LibraryWorkspace:
    identity: Identity
    profile: ProfileRecord
    store: TrackStore
    playlist: PlaylistStateMachine
    intake: UploadIntake
    subscription: Subscription

    @property
    def storage_mode(self) -> str:
        return self.store.mode


class SessionResolver:
    """Builds, caches and tears down library workspaces per user."""

    def __init__(
        self,
        gateway: RemoteDataGateway,
        fallback: LocalFallbackStore,
        events: AuthEventBus,
        blobs: BlobRegistry,
        sync_delay: Optional[float] = None,
    ):
        self.gateway = gateway
        self.fallback = fallback
        self.events = events
        self.blobs = blobs
        self.sync_delay = sync_delay
        self._workspaces: Dict[str, LibraryWorkspace] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        """Serializes building and tearing down one user's workspace."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def get(self, user_id: str) -> Optional[LibraryWorkspace]:
        return self._workspaces.get(user_id)

    async def activate(self, token: Optional[str]) -> LibraryWorkspace:
        """
        Return the workspace for the token's user, resolving it on first use.

        Raises:
            NotAuthenticatedError: If there is no valid session
        """
        if not token:
            raise NotAuthenticatedError("No session")

        identity = Identity.from_token(token)

        async with self._lock_for(identity.id):
            workspace = self._workspaces.get(identity.id)
            if workspace is not None:
                workspace.identity.access_token = token
                return workspace
            return await self._resolve(identity)

    async def _resolve(self, identity: Identity) -> LibraryWorkspace:
        logger.info(f"User session found: {identity.id}")

        if await self.gateway.schema_ready():
            store: TrackStore = RemoteTrackStore(self.gateway)
            profile = await self._ensure_profile(identity)
        else:
            logger.warning(
                f"Database not provisioned, using local storage for {identity.id}"
            )
            store = LocalTrackStore(self.fallback, self.blobs)
            profile = identity.synthesized_profile()

        # A failed fetch comes back as an empty list
        tracks = await store.load(identity.id)
        logger.info(f"Loaded {len(tracks)} songs for {identity.id}")

        kwargs = {} if self.sync_delay is None else {"sync_delay": self.sync_delay}
        playlist = PlaylistStateMachine(identity.id, store, tracks, **kwargs)

        workspace = LibraryWorkspace(
            identity=identity,
            profile=profile,
            store=store,
            playlist=playlist,
            intake=UploadIntake(playlist),
            subscription=self.events.subscribe(identity.id, self._on_auth_event),
        )
        self._workspaces[identity.id] = workspace
        return workspace

    async def _ensure_profile(self, identity: Identity) -> ProfileRecord:
        """Fetch the profile, creating it (and the default playlist) if absent."""
        profile = await self.gateway.fetch_profile(identity.id)
        if profile is not None:
            return profile

        logger.info(f"Profile not found, creating one for {identity.id}")
        synthesized = identity.synthesized_profile()
        created = await self.gateway.insert_profile(synthesized)
        if created is None:
            # Carry on with the unsaved profile built from the token
            return synthesized

        if await self.gateway.insert_default_playlist(identity.id) is None:
            logger.error(f"Default playlist not created for {identity.id}")
        return created

    async def _on_auth_event(self, event: AuthEvent) -> None:
        if event.kind == AuthEventKind.SIGNED_OUT:
            await self.teardown(event.user_id)
        elif event.kind == AuthEventKind.SIGNED_IN and event.access_token:
            await self.reload(event.user_id, event.access_token)

    async def reload(self, user_id: str, token: str) -> Optional[LibraryWorkspace]:
        """Throw the workspace away and resolve it again from scratch."""
        async with self._lock_for(user_id):
            self._close(user_id)

            try:
                identity = Identity.from_token(token)
            except NotAuthenticatedError:
                return None

            if identity.id != user_id:
                logger.error(
                    f"{ErrorKind.IDENTITY_MISMATCH.value}: token for {identity.id} "
                    f"delivered to workspace {user_id}"
                )
                return None

            return await self._resolve(identity)

    async def teardown(self, user_id: str) -> None:
        """Forget the user's identity, tracks and subscription."""
        async with self._lock_for(user_id):
            self._close(user_id)

    def _close(self, user_id: str) -> None:
        workspace = self._workspaces.pop(user_id, None)
        if workspace is None:
            return

        workspace.subscription.unsubscribe()
        workspace.playlist.close()
        logger.info(f"Library workspace closed for {user_id}")

    async def shutdown(self) -> None:
        for user_id in list(self._workspaces):
            await self.teardown(user_id)
