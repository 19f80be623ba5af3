"""Core services: Spotify client, snapshot cache, coalescing, retries, playback sync."""
from nowplaying.core.engine import SyncEngine
from nowplaying.core.playback_sync import PlaybackSyncScheduler
from nowplaying.core.spotify_client import SpotifyClient

__all__ = ["PlaybackSyncScheduler", "SpotifyClient", "SyncEngine"]
