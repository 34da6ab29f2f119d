"""
Clients for the managed backend's auth and object storage services.
"""

from app.services.backend.auth_provider import (
    AuthFailureReason,
    AuthProviderClient,
    AuthProviderError,
    SignUpResult,
)
from app.services.backend.events import (
    AuthEvent,
    AuthEventBus,
    AuthEventKind,
    auth_events,
)
from app.services.backend.storage import StorageClient

__all__ = [
    "AuthEvent",
    "AuthEventBus",
    "AuthEventKind",
    "auth_events",
    "AuthFailureReason",
    "AuthProviderClient",
    "AuthProviderError",
    "SignUpResult",
    "StorageClient",
]
