"""Bounded exponential backoff shared by the token refresh and the playback read."""
import logging
import random
import time
from typing import Callable, Optional, TypeVar

from nowplaying.core.errors import (
    CallType,
    Classification,
    FetchFailed,
    UpstreamError,
    classify_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

BASE_DELAY_MS = 1000
MAX_DELAY_MS = 30000
JITTER_MS = 1000
# BASE_DELAY_MS * 2^5 is already past MAX_DELAY_MS
MAX_BACKOFF_EXPONENT = 5
MAX_RETRIES = {
    CallType.CREDENTIAL: 2,
    CallType.PLAYBACK: 2,
}
RETRYABLE = frozenset(
    {
        Classification.RATE_LIMITED,
        Classification.UPSTREAM_UNAVAILABLE,
        Classification.NETWORK_ERROR,
    }
)


def is_retryable(classification: Classification) -> bool:
    return classification in RETRYABLE


def should_retry(
    classification: Classification,
    attempt: int,
    call: CallType = CallType.PLAYBACK,
) -> bool:
    """True when another try is allowed after `attempt` retries have already been made."""
    return is_retryable(classification) and attempt < MAX_RETRIES[call]


def backoff_ms(attempt: int) -> int:
    """Deterministic part of the delay: base * 2^attempt, capped."""
    exponent = min(max(0, attempt), MAX_BACKOFF_EXPONENT)
    return min(BASE_DELAY_MS * (2 ** exponent), MAX_DELAY_MS)


def delay_ms(
    attempt: int,
    retry_after_ms: Optional[int] = None,
    rng: Callable[[], float] = random.random,
) -> int:
    """Backoff plus [0, 1000) ms jitter; an upstream Retry-After that is longer wins."""
    delay = backoff_ms(attempt) + int(rng() * JITTER_MS)
    if retry_after_ms is not None and retry_after_ms > delay:
        return retry_after_ms
    return delay


def call_with_retry(
    call: CallType,
    fn: Callable[[], T],
    sleep: Callable[[float], None] = time.sleep,
    rng: Callable[[], float] = random.random,
) -> T:
    """Run fn, retrying retryable UpstreamErrors with backoff.

    Raises FetchFailed with the last FailureRecord once the failure is terminal or
    the retry budget for this call type is spent.
    """
    attempt = 0
    while True:
        try:
            return fn()
        except UpstreamError as e:
            failure = classify_error(e, attempt=attempt)
            if not should_retry(failure.classification, attempt, call):
                if is_retryable(failure.classification):
                    logger.warning(
                        "%s call: giving up after %d retries (%s)",
                        call.value, attempt, failure.classification.value,
                    )
                raise FetchFailed(failure) from e
            wait_ms = delay_ms(attempt, failure.retry_after_ms, rng)
            logger.info(
                "%s call: %s (status=%s), retrying in %d ms (%d/%d)",
                call.value,
                failure.classification.value,
                failure.status,
                wait_ms,
                attempt + 1,
                MAX_RETRIES[call],
            )
            sleep(wait_ms / 1000.0)
            attempt += 1
