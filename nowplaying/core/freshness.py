"""Cache-Control metadata for intermediate HTTP caches, derived from the snapshot."""
from dataclasses import dataclass
from typing import Dict

from nowplaying.models.playback import PlaybackSnapshot


@dataclass(frozen=True)
class Freshness:
    max_age_seconds: int
    stale_while_revalidate_seconds: int
    state_tag: str

    @property
    def cache_control(self) -> str:
        return f"s-maxage={self.max_age_seconds}, stale-while-revalidate={self.stale_while_revalidate_seconds}"

    def as_headers(self) -> Dict[str, str]:
        return {"Cache-Control": self.cache_control, "X-Playing-State": self.state_tag}


PLAYING = Freshness(max_age_seconds=5, stale_while_revalidate_seconds=10, state_tag="playing")
PAUSED = Freshness(max_age_seconds=60, stale_while_revalidate_seconds=120, state_tag="paused")


def headers_for(snapshot: PlaybackSnapshot) -> Freshness:
    return PLAYING if snapshot.is_playing else PAUSED
