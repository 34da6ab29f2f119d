"""
Dependency injection functions for the API.
"""

from fastapi import Depends, HTTPException, Cookie, status
from fastapi.security import OAuth2PasswordBearer
from typing import Optional

from app.db.session import SessionLocal, get_db
from app.services.backend import AuthProviderClient, StorageClient, auth_events
from app.services.library import (
    LibraryWorkspace,
    LocalFallbackStore,
    NotAuthenticatedError,
    RemoteDataGateway,
    SessionResolver,
    transient_blobs,
)


# Database dependency
db_dependency = get_db

# OAuth2 scheme for token extraction from Authorization header
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="api/auth/signin",
    auto_error=False,  # Don't auto-raise errors to allow cookie fallback
)

_session_resolver: Optional[SessionResolver] = None
_auth_provider: Optional[AuthProviderClient] = None


def get_session_resolver() -> SessionResolver:
    """Process-wide resolver wired to the managed backend and Redis."""
    global _session_resolver

    if _session_resolver is None:
        _session_resolver = SessionResolver(
            gateway=RemoteDataGateway(SessionLocal, StorageClient()),
            fallback=LocalFallbackStore(),
            events=auth_events,
            blobs=transient_blobs,
        )
    return _session_resolver


def get_auth_provider() -> AuthProviderClient:
    global _auth_provider

    if _auth_provider is None:
        _auth_provider = AuthProviderClient()
    return _auth_provider


async def get_optional_token(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token_cookie: Optional[str] = Cookie(None, alias="access_token"),
) -> Optional[str]:
    """Token from the Authorization header, else from the session cookie."""
    return token or access_token_cookie


async def get_token(token: Optional[str] = Depends(get_optional_token)) -> str:
    """
    Extract token from either Authorization header or cookie.

    Prioritizes the Authorization header token if available.
    """
    if token:
        return token

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_workspace(
    token: str = Depends(get_token),
    resolver: SessionResolver = Depends(get_session_resolver),
) -> LibraryWorkspace:
    """
    Resolve the signed-in user's library workspace.

    An invalid session is reported as 401 so the client returns to sign-in.
    """
    try:
        return await resolver.activate(token)
    except NotAuthenticatedError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
