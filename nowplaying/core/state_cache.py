"""In-memory snapshot cache with content-dependent TTL and read-driven expiry."""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from nowplaying.models.playback import PlaybackSnapshot

logger = logging.getLogger(__name__)

PLAYING_TTL_MS = 5000
PAUSED_TTL_MS = 60000


def ttl_for(snapshot: PlaybackSnapshot) -> int:
    return PLAYING_TTL_MS if snapshot.is_playing else PAUSED_TTL_MS


def cache_key(resource: str, is_playing: bool) -> str:
    """Key per resource and playing flag, so a lookup made under one flag never returns the other."""
    return f"{resource}:{'playing' if is_playing else 'paused'}"


@dataclass(frozen=True)
class CacheEntry:
    snapshot: PlaybackSnapshot
    fetched_at: float  # clock() seconds
    ttl_ms: int

    def age_ms(self, now: float) -> float:
        return (now - self.fetched_at) * 1000.0

    def is_expired(self, now: float) -> bool:
        return now - self.fetched_at >= self.ttl_ms / 1000.0


class StateCache:
    """Keyed snapshot store. No sweeper thread: entries are checked and evicted on get()."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[PlaybackSnapshot]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                logger.debug("Cache expired: %s (age %.0f ms)", key, entry.age_ms(now))
                return None
            return entry.snapshot

    def put(self, key: str, snapshot: PlaybackSnapshot) -> CacheEntry:
        entry = CacheEntry(snapshot=snapshot, fetched_at=self._clock(), ttl_ms=ttl_for(snapshot))
        with self._lock:
            self._entries[key] = entry
        return entry

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
