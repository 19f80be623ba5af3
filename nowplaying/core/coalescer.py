"""Single-flight fetches: concurrent callers for one key share one upstream round trip."""
import logging
import threading
from concurrent.futures import Future
from typing import Callable, Dict, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestCoalescer:
    """Tracks at most one in-flight Future per key.

    The first caller for a key runs the producer on its own thread; callers that
    arrive before it settles get the same Future back. The registration is removed
    before the Future is resolved, so a failure never leaves a stale entry behind.
    """

    def __init__(self) -> None:
        self._in_flight: Dict[str, Future] = {}
        self._lock = threading.Lock()

    def fetch_once(self, key: str, producer: Callable[[], T]) -> "Future[T]":
        with self._lock:
            future = self._in_flight.get(key)
            if future is not None:
                logger.debug("Joining in-flight fetch for %s", key)
                return future
            future = Future()
            future.set_running_or_notify_cancel()
            self._in_flight[key] = future

        try:
            result = producer()
        except BaseException as e:
            self._settle(key)
            future.set_exception(e)
            if not isinstance(e, Exception):
                raise
        else:
            self._settle(key)
            future.set_result(result)
        return future

    def _settle(self, key: str) -> None:
        with self._lock:
            self._in_flight.pop(key, None)

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._in_flight
