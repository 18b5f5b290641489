"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.auth import AuthFlow
from app.config import get_settings
from app.db import SqliteKeyValueStore, close_db, init_db
from app.notes import SqliteNoteStore
from app.song_log import SongLogger
from app.spotify_client import SpotifyClient
from app.token_store import TokenStore
from core.errors import SpotifyLoggerError

logger = logging.getLogger(__name__)

RECONNECT_HINT = "Please connect your Spotify account"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    settings = get_settings()
    await init_db()
    print(f"[startup] DB ready at {settings.db_abs_path}")

    # One token store / auth flow per process (shared refresh lock).
    auth_flow = AuthFlow(
        TokenStore(SqliteKeyValueStore()),
        settings.spotify_client_id,
        settings.redirect_uri,
        timeout=settings.http_timeout,
    )
    client = SpotifyClient(
        auth_flow,
        api_base=settings.spotify_api_base,
        timeout=settings.http_timeout,
    )
    app.state.auth_flow = auth_flow
    app.state.song_logger = SongLogger(
        client,
        SqliteNoteStore(),
        folder=settings.notes_folder,
        always_create_track_files=settings.always_create_track_files,
    )
    yield
    await close_db()
    print("[shutdown] DB closed")


app = FastAPI(
    title="spotify-logger",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(SpotifyLoggerError)
async def spotify_logger_error_handler(request: Request, exc: SpotifyLoggerError):
    """Surface a failed command as a short message; auth errors suggest reconnecting."""
    message = exc.message
    if exc.reconnect:
        message += f"\n{RECONNECT_HINT}"
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse({"detail": message}, status_code=exc.status_code)


# Routers
from app.auth import router as auth_router  # noqa: E402
from app.routes_log import router as log_router  # noqa: E402

app.include_router(auth_router)
app.include_router(log_router)


@app.get("/health")
async def health():
    """Simple health-check endpoint."""
    return JSONResponse({"status": "ok", "version": app.version})
