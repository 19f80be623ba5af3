"""FastAPI app, CORS, and route registration."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nowplaying.config import ALLOWED_ORIGINS, ENABLE_LOGIN, LOG_FORMAT, LOG_LEVEL

# Configure logging in the worker process (uvicorn --reload spawns a fresh one)
logging.basicConfig(
    level=LOG_LEVEL,
    format=LOG_FORMAT,
)

from nowplaying.api.state import AppState
from nowplaying.api.routes import now_playing, spotify, status

__all__ = ["app", "create_app"]


def create_app(
    state: Optional[AppState] = None,
    start_scheduler: bool = True,
    enable_login: bool = ENABLE_LOGIN,
) -> FastAPI:
    """Build the app. Without a state, one is built from the environment at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "nowplaying", None) is None:
            app.state.nowplaying = AppState.from_environment()
        app_state: AppState = app.state.nowplaying
        if start_scheduler:
            app_state.start()

        yield

        app_state.stop()

    app = FastAPI(
        title="Now Playing API",
        description="Cached Spotify currently-playing status for widgets",
        lifespan=lifespan,
    )
    app.state.nowplaying = state
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials="*" not in ALLOWED_ORIGINS,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    app.include_router(now_playing.router, tags=["now-playing"])
    app.include_router(status.router, prefix="/api/status", tags=["status"])
    if enable_login:
        app.include_router(spotify.router, prefix="/api/spotify", tags=["spotify"])
    return app


app = create_app()
