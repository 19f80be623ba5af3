"""Tests for the shared retry controller."""
import pytest

from nowplaying.core.errors import (
    CallType,
    Classification,
    CredentialError,
    FetchFailed,
    PlaybackError,
)
from nowplaying.core.retry import (
    MAX_DELAY_MS,
    backoff_ms,
    call_with_retry,
    delay_ms,
    should_retry,
)

RETRYABLE = {
    Classification.RATE_LIMITED,
    Classification.UPSTREAM_UNAVAILABLE,
    Classification.NETWORK_ERROR,
}


def test_should_retry_only_for_retryable_classifications():
    for classification in Classification:
        for attempt in range(0, 10):
            if should_retry(classification, attempt):
                assert classification in RETRYABLE


@pytest.mark.parametrize("call", list(CallType))
def test_retry_budget_is_two_per_call_type(call):
    assert should_retry(Classification.NETWORK_ERROR, 0, call)
    assert should_retry(Classification.NETWORK_ERROR, 1, call)
    assert not should_retry(Classification.NETWORK_ERROR, 2, call)


def test_backoff_is_non_decreasing_and_capped():
    values = [backoff_ms(a) for a in range(0, 40)]
    assert values[:3] == [1000, 2000, 4000]
    assert values == sorted(values)
    assert max(values) == MAX_DELAY_MS


def test_delay_never_exceeds_cap_plus_jitter():
    for attempt in range(0, 40):
        assert delay_ms(attempt, rng=lambda: 0.999999) < MAX_DELAY_MS + 1000
        assert delay_ms(attempt, rng=lambda: 0.0) >= backoff_ms(attempt)


def test_delay_honours_longer_retry_after():
    assert delay_ms(0, retry_after_ms=2000, rng=lambda: 0.5) == 2000
    assert delay_ms(0, retry_after_ms=200, rng=lambda: 0.5) == 1500


def test_call_with_retry_recovers_within_budget():
    outcomes = [PlaybackError("down", status=503), PlaybackError("down", status=502), {"ok": True}]
    sleeps = []

    def fn():
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    result = call_with_retry(CallType.PLAYBACK, fn, sleep=sleeps.append, rng=lambda: 0.0)

    assert result == {"ok": True}
    assert sleeps == [1.0, 2.0]


def test_call_with_retry_gives_up_after_budget():
    calls = []

    def fn():
        calls.append(1)
        raise PlaybackError("offline")

    with pytest.raises(FetchFailed) as exc_info:
        call_with_retry(CallType.PLAYBACK, fn, sleep=lambda s: None, rng=lambda: 0.0)

    assert len(calls) == 3
    assert exc_info.value.classification is Classification.NETWORK_ERROR
    assert exc_info.value.failure.attempt == 2


def test_terminal_failure_is_not_retried():
    calls = []

    def fn():
        calls.append(1)
        raise CredentialError("bad refresh token", status=400)

    with pytest.raises(FetchFailed) as exc_info:
        call_with_retry(CallType.CREDENTIAL, fn, sleep=lambda s: None)

    assert len(calls) == 1
    assert exc_info.value.classification is Classification.AUTH_ERROR
    assert exc_info.value.failure.attempt == 0


def test_backoff_for_huge_attempt_stays_at_cap():
    assert backoff_ms(10**6) == MAX_DELAY_MS
    assert backoff_ms(-3) == 1000
