"""Shared application state (engine + scheduler), injected into routes."""
import logging
import threading
from typing import Optional

from fastapi import Request

from nowplaying.config import ConfigurationError, validate_spotify_environment
from nowplaying.core.engine import SyncEngine
from nowplaying.core.playback_sync import PlaybackSyncScheduler
from nowplaying.core.spotify_client import SpotifyClient

logger = logging.getLogger(__name__)


class AppState:
    """Owns the process's single SyncEngine and its scheduler.

    engine is None when Spotify credentials are missing; routes then answer with a
    configuration error instead of calling upstream.
    """

    def __init__(
        self,
        engine: Optional[SyncEngine],
        config_error: Optional[str] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        self.engine = engine
        self.config_error = config_error
        self.scheduler: Optional[PlaybackSyncScheduler] = (
            PlaybackSyncScheduler(engine, stop_event) if engine is not None else None
        )

    @classmethod
    def from_environment(cls) -> "AppState":
        try:
            creds = validate_spotify_environment()
        except ConfigurationError as e:
            logger.error("%s", e)
            return cls(engine=None, config_error=str(e))
        client = SpotifyClient(
            client_id=creds["SPOTIFY_CLIENT_ID"],
            client_secret=creds["SPOTIFY_CLIENT_SECRET"],
            refresh_token=creds["SPOTIFY_REFRESH_TOKEN"],
        )
        return cls(engine=SyncEngine(client))

    def start(self) -> None:
        if self.scheduler is not None:
            self.scheduler.start()

    def stop(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()


def get_state(request: Request) -> AppState:
    return request.app.state.nowplaying
