"""Unit tests for session resolution and workspace lifecycle."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.orm import sessionmaker

from app.db.models import Playlist, Profile
from app.services.backend import AuthEvent, AuthEventBus, AuthEventKind
from app.services.library import (
    BlobRegistry,
    LocalFallbackStore,
    NotAuthenticatedError,
    RemoteDataGateway,
    SessionResolver,
)


@pytest.fixture
def events():
    return AuthEventBus()


@pytest.fixture
def remote_resolver(gateway, fallback_store, events):
    return SessionResolver(gateway, fallback_store, events, BlobRegistry(), sync_delay=60)


@pytest.fixture
def local_resolver(empty_engine, storage_client, fallback_store, events):
    gateway = RemoteDataGateway(sessionmaker(bind=empty_engine), storage_client)
    return SessionResolver(gateway, fallback_store, events, BlobRegistry(), sync_delay=60)


class TestActivation:
    """Tests for resolving the signed-in identity."""

    @pytest.mark.asyncio
    async def test_missing_token_is_unauthenticated(self, remote_resolver):
        with pytest.raises(NotAuthenticatedError):
            await remote_resolver.activate(None)

    @pytest.mark.asyncio
    async def test_expired_token_is_unauthenticated(self, remote_resolver, token_factory):
        token = token_factory(expires_in=timedelta(minutes=-5))

        with pytest.raises(NotAuthenticatedError):
            await remote_resolver.activate(token)

    @pytest.mark.asyncio
    async def test_garbage_token_is_unauthenticated(self, remote_resolver):
        with pytest.raises(NotAuthenticatedError):
            await remote_resolver.activate("not-a-jwt")

    @pytest.mark.asyncio
    async def test_first_activation_provisions_profile_and_default_playlist(
        self, remote_resolver, token_factory, db_session
    ):
        workspace = await remote_resolver.activate(token_factory(email="dj@example.com"))

        assert workspace.storage_mode == "remote"
        assert workspace.profile.id == "user-1"
        assert workspace.profile.name == "dj"

        assert db_session.get(Profile, "user-1") is not None
        playlists = db_session.query(Playlist).filter(Playlist.user_id == "user-1").all()
        assert [(p.name, p.is_default) for p in playlists] == [("My Music", True)]
        await remote_resolver.shutdown()

    @pytest.mark.asyncio
    async def test_name_from_metadata_wins(self, remote_resolver, token_factory):
        workspace = await remote_resolver.activate(token_factory(name="Night Owl"))

        assert workspace.profile.name == "Night Owl"
        await remote_resolver.shutdown()

    @pytest.mark.asyncio
    async def test_existing_profile_is_reused(self, remote_resolver, gateway, token_factory):
        await remote_resolver.activate(token_factory())
        await remote_resolver.teardown("user-1")
        gateway.insert_profile = AsyncMock()

        workspace = await remote_resolver.activate(token_factory())

        gateway.insert_profile.assert_not_awaited()
        assert workspace.profile.email == "listener@example.com"
        await remote_resolver.shutdown()

    @pytest.mark.asyncio
    async def test_profile_insert_failure_uses_synthesized_profile(
        self, remote_resolver, gateway, token_factory
    ):
        gateway.insert_profile = AsyncMock(return_value=None)
        gateway.insert_default_playlist = AsyncMock()

        workspace = await remote_resolver.activate(token_factory(email=None))

        assert workspace.profile.id == "user-1"
        assert workspace.profile.name == "User"
        gateway.insert_default_playlist.assert_not_awaited()
        await remote_resolver.shutdown()

    @pytest.mark.asyncio
    async def test_track_fetch_failure_gives_empty_playlist(
        self, remote_resolver, gateway, token_factory
    ):
        gateway.fetch_tracks = AsyncMock(return_value=[])

        workspace = await remote_resolver.activate(token_factory())

        assert workspace.playlist.tracks == []
        await remote_resolver.shutdown()

    @pytest.mark.asyncio
    async def test_workspace_is_cached_per_user(self, remote_resolver, token_factory):
        first = await remote_resolver.activate(token_factory())
        second = await remote_resolver.activate(token_factory())

        assert first is second
        await remote_resolver.shutdown()


class TestLocalFallback:
    """Tests for the unprovisioned-schema path."""

    @pytest.mark.asyncio
    async def test_missing_schema_selects_local_store(self, local_resolver, token_factory):
        workspace = await local_resolver.activate(token_factory())

        assert workspace.storage_mode == "local"
        assert workspace.profile.email == "listener@example.com"
        await local_resolver.shutdown()

    @pytest.mark.asyncio
    async def test_local_changes_readable_after_reload(
        self, local_resolver, token_factory, mp3_factory
    ):
        token = token_factory()
        workspace = await local_resolver.activate(token)
        a = await workspace.playlist.append(mp3_factory("a.mp3"))
        b = await workspace.playlist.append(mp3_factory("b.mp3"))
        await workspace.playlist.append(mp3_factory("c.mp3"))
        await workspace.playlist.remove(b.id)

        reloaded = await local_resolver.reload("user-1", token)

        assert reloaded is not workspace
        assert reloaded.storage_mode == "local"
        assert [t.title for t in reloaded.playlist.tracks] == ["a", "c"]
        assert reloaded.playlist.tracks[0].id == a.id
        await local_resolver.shutdown()


class TestSessionChanges:
    """Tests for reacting to sign-in and sign-out notifications."""

    @pytest.mark.asyncio
    async def test_sign_out_tears_down_workspace(
        self, remote_resolver, events, token_factory, mp3_factory
    ):
        workspace = await remote_resolver.activate(token_factory())
        track = await workspace.playlist.append(mp3_factory())
        workspace.playlist.playback.toggle(track.id)

        await events.publish(AuthEvent(AuthEventKind.SIGNED_OUT, "user-1"))

        assert remote_resolver.get("user-1") is None
        assert workspace.playlist.tracks == []
        assert workspace.playlist.playback.now_playing is None
        assert not workspace.playlist.sync_pending
        assert events.subscriber_count("user-1") == 0

    @pytest.mark.asyncio
    async def test_sign_in_reloads_from_scratch(
        self, remote_resolver, events, token_factory
    ):
        token = token_factory()
        workspace = await remote_resolver.activate(token)

        await events.publish(AuthEvent(AuthEventKind.SIGNED_IN, "user-1", token))

        reloaded = remote_resolver.get("user-1")
        assert reloaded is not None
        assert reloaded is not workspace
        assert events.subscriber_count("user-1") == 1
        await remote_resolver.shutdown()

    @pytest.mark.asyncio
    async def test_identity_mismatch_drops_workspace(self, remote_resolver, token_factory):
        await remote_resolver.activate(token_factory(user_id="user-1"))

        result = await remote_resolver.reload("user-1", token_factory(user_id="user-2"))

        assert result is None
        assert remote_resolver.get("user-1") is None
        assert remote_resolver.get("user-2") is None

    @pytest.mark.asyncio
    async def test_events_for_other_users_are_ignored(
        self, remote_resolver, events, token_factory
    ):
        await remote_resolver.activate(token_factory(user_id="user-1"))

        await events.publish(AuthEvent(AuthEventKind.SIGNED_OUT, "user-2"))

        assert remote_resolver.get("user-1") is not None
        await remote_resolver.shutdown()


class SlowRedis:
    """Redis double whose reads take long enough for requests to interleave."""

    def __init__(self, inner, delay=0.05):
        self.inner = inner
        self.delay = delay

    async def get(self, key):
        await asyncio.sleep(self.delay)
        return await self.inner.get(key)

    async def set(self, key, value, ex=None):
        return await self.inner.set(key, value, ex=ex)


class TestConcurrentLifecycle:
    """Tests for session changes racing with library requests."""

    @pytest.fixture
    def slow_resolver(self, empty_engine, storage_client, fake_redis, events):
        slow = SlowRedis(fake_redis)

        async def redis_factory():
            return slow

        gateway = RemoteDataGateway(sessionmaker(bind=empty_engine), storage_client)
        return SessionResolver(
            gateway, LocalFallbackStore(redis_factory), events, BlobRegistry(), sync_delay=60
        )

    @pytest.mark.asyncio
    async def test_sign_in_during_activation_keeps_one_workspace(
        self, slow_resolver, events, token_factory
    ):
        token = token_factory()
        first = await slow_resolver.activate(token)

        _, activated = await asyncio.gather(
            events.publish(AuthEvent(AuthEventKind.SIGNED_IN, "user-1", token)),
            slow_resolver.activate(token),
        )

        current = slow_resolver.get("user-1")
        assert current is not first
        assert activated is current
        assert events.subscriber_count("user-1") == 1
        await slow_resolver.shutdown()

    @pytest.mark.asyncio
    async def test_users_do_not_wait_on_each_other(self, slow_resolver, token_factory):
        async with slow_resolver._lock_for("user-1"):
            workspace = await asyncio.wait_for(
                slow_resolver.activate(token_factory(user_id="user-2")), timeout=1
            )

        assert workspace.identity.id == "user-2"
        await slow_resolver.shutdown()
