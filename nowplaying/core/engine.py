"""SyncEngine: cache lookup, coalesced upstream fetch with retries, cache write."""
import logging
import random
import threading
import time
from functools import partial
from typing import Callable, Dict, Optional, Protocol

from nowplaying.core.coalescer import RequestCoalescer
from nowplaying.core.errors import CallType, Classification, FetchFailed
from nowplaying.core.retry import call_with_retry
from nowplaying.core.state_cache import StateCache, cache_key
from nowplaying.models.playback import PlaybackSnapshot, normalize_snapshot

logger = logging.getLogger(__name__)

DEFAULT_RESOURCE = "me"


class UpstreamClient(Protocol):
    def refresh_credential(self): ...

    def fetch_playback(self, credential) -> Optional[dict]: ...


class SyncEngine:
    """One per process. Routes and the scheduler share it; nothing here is module-global.

    clock, sleep and rng are injectable so TTLs and backoff can be driven from tests.
    """

    def __init__(
        self,
        client: UpstreamClient,
        resource: str = DEFAULT_RESOURCE,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._client = client
        self.resource = resource
        self._sleep = sleep
        self._rng = rng
        self.cache = StateCache(clock=clock)
        self.coalescer = RequestCoalescer()
        self._last_playing: Dict[str, bool] = {}
        self._lock = threading.Lock()

    def last_known_playing(self) -> bool:
        with self._lock:
            return self._last_playing.get(self.resource, False)

    def current_snapshot(self) -> PlaybackSnapshot:
        """Cached snapshot if fresh, otherwise join or start the coalesced fetch.

        Raises FetchFailed on a terminal upstream failure.
        """
        key = cache_key(self.resource, self.last_known_playing())
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit: %s", key)
            return cached
        logger.debug("Cache miss: %s", key)
        return self.refresh()

    def refresh(self) -> PlaybackSnapshot:
        """Fetch from upstream through the coalescer, bypassing the cache lookup."""
        return self.coalescer.fetch_once(self.resource, self._fetch_and_store).result()

    def _fetch_and_store(self) -> PlaybackSnapshot:
        raw = self._fetch_raw()
        snapshot = normalize_snapshot(PlaybackSnapshot.from_currently_playing(raw))
        self._store(snapshot)
        return snapshot

    def _fetch_raw(self) -> Optional[dict]:
        credential = self._with_retry(CallType.CREDENTIAL, self._client.refresh_credential)
        try:
            return self._with_retry(CallType.PLAYBACK, partial(self._client.fetch_playback, credential))
        except FetchFailed as e:
            if e.classification is not Classification.AUTH_ERROR:
                raise
        # Access token rejected: one fresh token, one more playback attempt chain
        logger.warning("Access token rejected by Spotify, refreshing once")
        credential = self._with_retry(CallType.CREDENTIAL, self._client.refresh_credential)
        return self._with_retry(CallType.PLAYBACK, partial(self._client.fetch_playback, credential))

    def _with_retry(self, call: CallType, fn):
        return call_with_retry(call, fn, sleep=self._sleep, rng=self._rng)

    def _store(self, snapshot: PlaybackSnapshot) -> None:
        playing = snapshot.is_playing
        with self._lock:
            self.cache.put(cache_key(self.resource, playing), snapshot)
            # Drop the entry under the other flag so it can never be served again
            self.cache.invalidate(cache_key(self.resource, not playing))
            previous = self._last_playing.get(self.resource)
            self._last_playing[self.resource] = playing
        if previous is not None and previous != playing:
            logger.info("Playback state changed: %s", "playing" if playing else "paused")
