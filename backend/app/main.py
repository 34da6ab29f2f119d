"""
Main application initialization and configuration.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.core.config import CORS_ORIGINS
from app.core.redis import close_redis_connections, health_check_redis
from app.dependencies import db_dependency, get_session_resolver
from app.api.routes import auth, library, player
from app.middleware.csrf import setup_csrf_middleware
from app.services.library import SessionResolver


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Cancel pending order writes and release subscriptions before exit
    resolver_factory = app.dependency_overrides.get(
        get_session_resolver, get_session_resolver
    )
    await resolver_factory().shutdown()
    await close_redis_connections()


# Initialize FastAPI application
app = FastAPI(title="MyMusicVault API", lifespan=lifespan)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Sign-in and sign-up happen before the browser holds a CSRF cookie
setup_csrf_middleware(app, exempt_paths=["/api/auth/signin", "/api/auth/signup"])

# Include routers
app.include_router(auth.router)
app.include_router(library.router)
app.include_router(player.router)


@app.get("/")
def read_root():
    """Return a welcome message at the root endpoint."""
    return {"message": "Welcome to MyMusicVault API"}


@app.get("/api/health")
async def health_check(resolver: SessionResolver = Depends(get_session_resolver)):
    """Health check endpoint to verify the API is running."""
    redis_status = await health_check_redis()
    database_ready = await resolver.gateway.schema_ready()

    return {
        "status": "healthy",
        "services": {
            "api": "online",
            "database": "ready" if database_ready else "missing",
            "fallback_store": redis_status,
        },
    }


@app.get("/api/db-test")
def db_test(db: Session = Depends(db_dependency)):
    """Test the database connection."""
    try:
        db.execute(text("SELECT 1"))
        return {"status": "Database connection successful!"}
    except Exception as e:
        return {"status": "Database connection failed", "error": str(e)}
