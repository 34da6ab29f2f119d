"""
Test configuration and fixtures for pytest.
"""

import os

# Set before the app is imported so CSRF checks are bypassed
os.environ["TESTING"] = "True"

from datetime import timedelta
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import ALGORITHM, JWT_SECRET_KEY, TOKEN_AUDIENCE
from app.db.base import Base
import app.db.models  # noqa: F401
from app.dependencies import db_dependency, get_auth_provider, get_session_resolver
from app.main import app
from app.services.backend import AuthProviderClient, StorageClient, auth_events
from app.services.library import (
    BlobRegistry,
    LocalFallbackStore,
    RemoteDataGateway,
    SessionResolver,
    UploadedFile,
)
from app.utils.datetime_helper import utc_now

STORAGE_URL = "http://backend.test"
AUTH_URL = "http://backend.test"


class FakeRedis:
    """Async in-memory stand-in for the handful of Redis calls the app makes."""

    def __init__(self):
        self.data: Dict[str, str] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        return True

    async def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0

    async def ping(self):
        return True


class StorageRecorder:
    """MockTransport handler that records storage calls and can be told to fail."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.fail_uploads_with: List[bytes] = []
        self.status_code = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST" and request.content in self.fail_uploads_with:
            return httpx.Response(500, json={"error": "upload failed"})
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"error": "storage error"})
        return httpx.Response(200, json={"Key": request.url.path})

    @property
    def uploads(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    @property
    def deletes(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "DELETE"]


def make_token(
    user_id: str = "user-1",
    email: Optional[str] = "listener@example.com",
    name: Optional[str] = None,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """Sign an access token the way the auth provider does."""
    payload: Dict[str, Any] = {
        "sub": user_id,
        "aud": TOKEN_AUDIENCE,
        "exp": utc_now() + expires_in,
        "role": "authenticated",
    }
    if email is not None:
        payload["email"] = email
    if name is not None:
        payload["user_metadata"] = {"name": name}
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=ALGORITHM)


def mp3(name: str = "song.mp3", data: bytes = b"ID3fake-audio") -> UploadedFile:
    return UploadedFile(file_name=name, content_type="audio/mpeg", data=data)


@pytest.fixture
def test_engine():
    """In-memory SQLite engine with the library schema."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def empty_engine():
    """In-memory SQLite engine where the schema was never provisioned."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(bind=test_engine, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    """A database session for direct model access."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fallback_store(fake_redis):
    async def redis_factory():
        return fake_redis

    return LocalFallbackStore(redis_factory)


@pytest.fixture
def storage_recorder():
    return StorageRecorder()


@pytest.fixture
def storage_client(storage_recorder):
    return StorageClient(
        base_url=STORAGE_URL,
        api_key="service-key",
        bucket="songs",
        transport=httpx.MockTransport(storage_recorder),
    )


@pytest.fixture
def gateway(session_factory, storage_client):
    return RemoteDataGateway(session_factory, storage_client)


@pytest.fixture
def resolver(gateway, fallback_store):
    """Resolver on the shared event bus, with a debounce long enough to never fire."""
    return SessionResolver(
        gateway=gateway,
        fallback=fallback_store,
        events=auth_events,
        blobs=BlobRegistry(),
        sync_delay=60.0,
    )


@pytest.fixture
def auth_provider():
    """Auth client whose transport a test replaces with its own handler."""
    return AuthProviderClient(base_url=AUTH_URL, api_key="anon-key")


@pytest.fixture
def client(resolver, auth_provider, db_session):
    """Create a test client with the backend collaborators overridden."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[db_dependency] = override_get_db
    app.dependency_overrides[get_session_resolver] = lambda: resolver
    app.dependency_overrides[get_auth_provider] = lambda: auth_provider

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


# Reset test environment at the end of session
def pytest_sessionfinish(session, exitstatus):
    """Clean up after all tests have run."""
    os.environ.pop("TESTING", None)


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def mp3_factory():
    return mp3
