"""Playback snapshot from Spotify and its response shape."""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

logger = logging.getLogger(__name__)


class ContentType(str, Enum):
    TRACK = "track"
    EPISODE = "episode"
    AD = "ad"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ContentType":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class AlbumImage:
    url: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class TrackInfo:
    """Track metadata; missing fields fall back to the same placeholders widgets show."""
    name: str = "Unknown Track"
    artist_names: Tuple[str, ...] = ("Unknown Artist",)
    duration_ms: int = 0
    album_name: str = "Unknown Album"
    album_images: Tuple[AlbumImage, ...] = ()
    external_url: Optional[str] = None

    @classmethod
    def from_item(cls, item: dict) -> "TrackInfo":
        album = item.get("album") or {}
        artists = tuple(a["name"] for a in item.get("artists") or [] if a and a.get("name"))
        images = tuple(
            AlbumImage(url=img["url"], width=img.get("width"), height=img.get("height"))
            for img in album.get("images") or []
            if img and img.get("url")
        )
        return cls(
            name=item.get("name") or "Unknown Track",
            artist_names=artists or ("Unknown Artist",),
            duration_ms=int(item.get("duration_ms") or 0),
            album_name=album.get("name") or "Unknown Album",
            album_images=images,
            external_url=(item.get("external_urls") or {}).get("spotify"),
        )


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Point-in-time read of upstream playback. Never mutated after construction."""
    is_playing: bool
    progress_ms: Optional[int] = None
    track: Optional[TrackInfo] = None
    content_type: ContentType = ContentType.UNKNOWN

    def __post_init__(self) -> None:
        # A stopped snapshot carries no track or position
        if not self.is_playing:
            object.__setattr__(self, "progress_ms", None)
            object.__setattr__(self, "track", None)
        elif self.progress_ms is not None and self.progress_ms < 0:
            object.__setattr__(self, "progress_ms", 0)

    @classmethod
    def not_playing(cls, content_type: ContentType = ContentType.UNKNOWN) -> "PlaybackSnapshot":
        return cls(is_playing=False, content_type=content_type)

    @classmethod
    def from_currently_playing(cls, pb: Optional[dict]) -> "PlaybackSnapshot":
        """Build a snapshot from a currently-playing payload (None means the 204 "nothing playing")."""
        if not pb:
            return cls.not_playing()
        item = pb.get("item") or None
        # The item says what is actually playing; currently_playing_type can lag as "unknown"
        if item and item.get("type"):
            content_type = ContentType.parse(item["type"])
        else:
            content_type = ContentType.parse(pb.get("currently_playing_type"))
        return cls(
            is_playing=bool(pb.get("is_playing", False)),
            progress_ms=int(pb.get("progress_ms") or 0),
            track=TrackInfo.from_item(item) if item else None,
            content_type=content_type,
        )

    def to_response(self) -> dict[str, Any]:
        """Flattened JSON body for /now-playing."""
        if not self.is_playing or self.track is None:
            return {"is_playing": False}
        track = self.track
        return {
            "is_playing": True,
            "progress_ms": self.progress_ms or 0,
            "item": {
                "name": track.name,
                "artists": list(track.artist_names),
                "duration_ms": track.duration_ms,
                "album": {
                    "name": track.album_name,
                    "images": [
                        {"url": img.url, "width": img.width, "height": img.height}
                        for img in track.album_images
                    ],
                },
                "external_urls": {"spotify": track.external_url} if track.external_url else {},
            },
        }


def normalize_snapshot(snapshot: PlaybackSnapshot) -> PlaybackSnapshot:
    """Only music tracks count as playing; episodes, ads and item-less reads become not playing.

    The same object is returned when nothing changes.
    """
    if not snapshot.is_playing:
        return snapshot
    if snapshot.content_type is not ContentType.TRACK:
        logger.debug("Normalizing %s playback to not playing", snapshot.content_type.value)
        return PlaybackSnapshot.not_playing(snapshot.content_type)
    if snapshot.track is None:
        logger.warning("Spotify reported playing=true but no item data")
        return PlaybackSnapshot.not_playing(snapshot.content_type)
    return snapshot
