"""Upstream failure types and their classification."""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

DEFAULT_RETRY_AFTER_MS = 1000


class CallType(str, Enum):
    """The two outbound calls; retries are budgeted per call type."""
    CREDENTIAL = "credential"
    PLAYBACK = "playback"


class Classification(str, Enum):
    AUTH_ERROR = "auth_error"
    PERMISSION_ERROR = "permission_error"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    NETWORK_ERROR = "network_error"
    UNEXPECTED = "unexpected"


class UpstreamError(Exception):
    """Raw failure from an outbound call. status is None for transport-level failures."""

    call = CallType.PLAYBACK

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        retry_after_ms: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.retry_after_ms = retry_after_ms


class CredentialError(UpstreamError):
    """Token endpoint failed or returned no access token."""

    call = CallType.CREDENTIAL


class PlaybackError(UpstreamError):
    """currently-playing read failed."""

    call = CallType.PLAYBACK


@dataclass(frozen=True)
class FailureRecord:
    classification: Classification
    call: CallType
    attempt: int = 0
    retry_after_ms: Optional[int] = None
    status: Optional[int] = None

    @property
    def summary(self) -> str:
        """Client-safe error string; never includes status codes or credentials."""
        if self.classification is Classification.NETWORK_ERROR:
            return "Network error connecting to Spotify"
        if self.classification in (Classification.AUTH_ERROR, Classification.PERMISSION_ERROR):
            return "Authentication failed"
        if self.classification is Classification.UPSTREAM_UNAVAILABLE:
            return "Spotify API temporarily unavailable"
        if self.classification is Classification.RATE_LIMITED:
            return "Spotify API rate limit exceeded"
        return "Failed to fetch now playing"


class FetchFailed(Exception):
    """Terminal failure of a coalesced fetch; carries the last FailureRecord."""

    def __init__(self, failure: FailureRecord) -> None:
        super().__init__(
            f"{failure.call.value} call failed: {failure.classification.value} "
            f"(status={failure.status}, attempt={failure.attempt})"
        )
        self.failure = failure

    @property
    def classification(self) -> Classification:
        return self.failure.classification


def classify(call: CallType, status: Optional[int]) -> Classification:
    """Map a raw status (None = transport failure or timeout) to a Classification. Total, never raises."""
    if status is None:
        return Classification.NETWORK_ERROR
    if status == 429:
        return Classification.RATE_LIMITED
    if status >= 500:
        return Classification.UPSTREAM_UNAVAILABLE
    if call is CallType.CREDENTIAL:
        if status == 400:
            # Refresh token itself is invalid or revoked
            return Classification.AUTH_ERROR
        if status == 401:
            # Client id / secret pair mismatch
            return Classification.PERMISSION_ERROR
    else:
        if status == 401:
            # Access token died early; a fresh refresh can recover
            return Classification.AUTH_ERROR
        if status == 403:
            # Missing scope
            return Classification.PERMISSION_ERROR
    return Classification.UNEXPECTED


def classify_error(error: UpstreamError, attempt: int = 0) -> FailureRecord:
    """Build the FailureRecord for a raised UpstreamError."""
    classification = classify(error.call, error.status)
    retry_after_ms = None
    if classification is Classification.RATE_LIMITED:
        retry_after_ms = error.retry_after_ms if error.retry_after_ms is not None else DEFAULT_RETRY_AFTER_MS
    return FailureRecord(
        classification=classification,
        call=error.call,
        attempt=attempt,
        retry_after_ms=retry_after_ms,
        status=error.status,
    )


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Retry-After header (delta seconds) to milliseconds; None when absent or unparseable."""
    if value is None:
        return None
    try:
        seconds = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return int(seconds * 1000)
