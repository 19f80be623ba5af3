"""Shared fakes: scripted upstream client, manual clock, recording sleep."""
import threading
from typing import Any, Callable, List, Optional

import pytest

from nowplaying.core.engine import SyncEngine
from nowplaying.core.spotify_client import Credential


def playing_payload(
    name: str = "Song A",
    artist: str = "Artist A",
    duration_ms: int = 200000,
    progress_ms: int = 1000,
) -> dict:
    return {
        "is_playing": True,
        "progress_ms": progress_ms,
        "currently_playing_type": "track",
        "item": {
            "type": "track",
            "name": name,
            "artists": [{"name": artist}],
            "duration_ms": duration_ms,
            "album": {
                "name": "Album A",
                "images": [{"url": "https://i.scdn.co/image/a", "width": 640, "height": 640}],
            },
            "external_urls": {"spotify": "https://open.spotify.com/track/a"},
        },
    }


class ManualClock:
    """Monotonic clock in whole milliseconds, read as seconds like time.monotonic."""

    def __init__(self, now_ms: int = 1_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> float:
        return self.now_ms / 1000.0

    def advance_ms(self, ms: int) -> None:
        self.now_ms += ms


class RecordingSleep:
    """Records requested sleeps (seconds) and advances the clock instead of blocking."""

    def __init__(self, clock: Optional[ManualClock] = None) -> None:
        self.calls: List[float] = []
        self._clock = clock

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self._clock is not None:
            self._clock.advance_ms(round(seconds * 1000))

    @property
    def total(self) -> float:
        return sum(self.calls)


class ScriptedClient:
    """Upstream double. Each script entry is a value to return or an exception to raise;
    the last entry repeats once the script runs out."""

    def __init__(
        self,
        credentials: Optional[List[Any]] = None,
        playback: Optional[List[Any]] = None,
        before_playback: Optional[Callable[[], None]] = None,
    ) -> None:
        self.credentials = list(credentials or [Credential(access_token="token")])
        self.playback = list(playback or [None])
        self.credential_calls = 0
        self.playback_calls = 0
        self.seen_credentials: List[Credential] = []
        self._before_playback = before_playback
        self._lock = threading.Lock()

    @staticmethod
    def _next(script: List[Any], index: int) -> Any:
        outcome = script[min(index, len(script) - 1)]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def refresh_credential(self) -> Credential:
        with self._lock:
            index = self.credential_calls
            self.credential_calls += 1
        return self._next(self.credentials, index)

    def fetch_playback(self, credential: Credential) -> Optional[dict]:
        if self._before_playback is not None:
            self._before_playback()
        with self._lock:
            index = self.playback_calls
            self.playback_calls += 1
            self.seen_credentials.append(credential)
        return self._next(self.playback, index)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def sleep(clock: ManualClock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
def make_engine(clock: ManualClock, sleep: RecordingSleep):
    def _make(client: ScriptedClient) -> SyncEngine:
        return SyncEngine(client, clock=clock, sleep=sleep, rng=lambda: 0.0)

    return _make
