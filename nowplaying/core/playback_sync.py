"""Background polling loop whose interval follows the last observed playback state."""
import logging
import threading
from enum import Enum
from typing import Optional

from nowplaying.core.engine import SyncEngine
from nowplaying.core.errors import FailureRecord, FetchFailed
from nowplaying.models.playback import PlaybackSnapshot

logger = logging.getLogger(__name__)

PLAYING_INTERVAL_MS = 5000
PAUSED_INTERVAL_MS = 60000
ERROR_INTERVAL_MS = 30000


class SchedulerState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SCHEDULED = "scheduled"
    STOPPED = "stopped"


def next_interval_ms(snapshot: Optional[PlaybackSnapshot]) -> int:
    """Interval after a settled fetch; None means the fetch failed terminally."""
    if snapshot is None:
        return ERROR_INTERVAL_MS
    return PLAYING_INTERVAL_MS if snapshot.is_playing else PAUSED_INTERVAL_MS


class PlaybackSyncScheduler:
    """Idle -> Fetching -> Scheduled -> Fetching ... until stop().

    stop_event is the cancellation token. Setting it wakes the pending wait at once;
    a fetch already running finishes and fills the cache, but nothing is scheduled
    after it.
    """

    def __init__(self, engine: SyncEngine, stop_event: Optional[threading.Event] = None) -> None:
        self._engine = engine
        self._stop = stop_event or threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.state = SchedulerState.IDLE
        self.last_interval_ms: Optional[int] = None
        self.last_failure: Optional[FailureRecord] = None

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def _set_state(self, state: SchedulerState) -> None:
        with self._lock:
            if self.state is SchedulerState.STOPPED:
                return
            logger.debug("Scheduler: %s -> %s", self.state.value, state.value)
            self.state = state

    def run_once(self) -> int:
        """Serve from the cache or join/start the coalesced fetch; returns the interval until the next run."""
        self._set_state(SchedulerState.FETCHING)
        snapshot: Optional[PlaybackSnapshot] = None
        try:
            snapshot = self._engine.current_snapshot()
            self.last_failure = None
        except FetchFailed as e:
            self.last_failure = e.failure
            logger.warning("Playback sync: %s", e)
        interval = next_interval_ms(snapshot)
        self.last_interval_ms = interval
        self._set_state(SchedulerState.SCHEDULED)
        return interval

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                interval = self.run_once()
            except Exception:
                # Keep polling; the error interval gives upstream time to recover
                logger.exception("Playback sync: unexpected failure")
                interval = ERROR_INTERVAL_MS
                self._set_state(SchedulerState.SCHEDULED)
            if self._stop.wait(timeout=interval / 1000.0):
                break

    def start(self) -> None:
        """Fetch immediately, then keep polling on a daemon thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name="playback-sync", daemon=True)
        self._thread.start()
        logger.info("Playback sync thread started")

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        with self._lock:
            self.state = SchedulerState.STOPPED
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Playback sync thread stopped")
