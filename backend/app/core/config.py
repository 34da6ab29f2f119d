"""
Runtime configuration for the managed backend and the playlist service.

Values come from environment variables so the same image can run against a
local stack, a hosted project, or the test suite.
"""

import logging
import os

logger = logging.getLogger(__name__)

FALLBACK_SUPABASE_URL = "http://localhost:54321"
FALLBACK_ANON_KEY = "anon-key-placeholder"

SUPABASE_URL = os.getenv("SUPABASE_URL", FALLBACK_SUPABASE_URL).rstrip("/")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", FALLBACK_ANON_KEY)
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY") or SUPABASE_ANON_KEY

if SUPABASE_URL == FALLBACK_SUPABASE_URL or SUPABASE_ANON_KEY == FALLBACK_ANON_KEY:
    logger.warning(
        "SUPABASE_URL / SUPABASE_ANON_KEY are not set, using placeholder values. "
        "Requests to the auth and storage services will fail until they are configured."
    )

# Object storage
STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "songs")

# Playlist order persistence is debounced by this many seconds
POSITION_SYNC_DELAY = float(os.getenv("POSITION_SYNC_DELAY", "1.0"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "http://localhost:3000,https://localhost"
    ).split(",")
    if origin.strip()
]
