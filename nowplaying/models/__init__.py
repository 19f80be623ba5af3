"""Data models for playback snapshots."""
from nowplaying.models.playback import (
    AlbumImage,
    ContentType,
    PlaybackSnapshot,
    TrackInfo,
    normalize_snapshot,
)

__all__ = [
    "AlbumImage",
    "ContentType",
    "PlaybackSnapshot",
    "TrackInfo",
    "normalize_snapshot",
]
