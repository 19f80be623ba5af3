"""Spotify upstream calls: refresh the access token, read currently-playing.

No caching and no retries here; failures are raised with the raw status attached
and classified by the caller.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import requests
from spotipy import Spotify, SpotifyException
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from nowplaying.config import (
    REQUEST_TIMEOUT_SEC,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_REFRESH_TOKEN,
    SPOTIFY_SCOPES,
    SPOTIFY_TOKEN_URL,
)
from nowplaying.core.errors import CredentialError, PlaybackError, parse_retry_after

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """Short-lived bearer token from the token endpoint."""
    access_token: str
    expires_in: int = 3600
    token_type: str = "Bearer"

    def __repr__(self) -> str:
        return f"Credential(token_type={self.token_type!r}, expires_in={self.expires_in})"


def _retry_after_from(headers) -> Optional[int]:
    if not headers:
        return None
    return parse_retry_after(headers.get("Retry-After"))


class SpotifyClient:
    """Two outbound calls against the Spotify accounts and Web API."""

    def __init__(
        self,
        client_id: str = SPOTIFY_CLIENT_ID,
        client_secret: str = SPOTIFY_CLIENT_SECRET,
        refresh_token: str = SPOTIFY_REFRESH_TOKEN,
        timeout_sec: float = REQUEST_TIMEOUT_SEC,
        token_url: str = SPOTIFY_TOKEN_URL,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._timeout_sec = timeout_sec
        self._token_url = token_url
        self._session = session or requests.Session()

    def refresh_credential(self) -> Credential:
        """Exchange the refresh token for an access token (basic auth with the app credentials)."""
        try:
            response = self._session.post(
                self._token_url,
                data={"grant_type": "refresh_token", "refresh_token": self._refresh_token},
                auth=(self._client_id, self._client_secret),
                timeout=self._timeout_sec,
            )
        except requests.RequestException as e:
            # Connection failures and timeouts carry no status
            raise CredentialError(f"Token request failed: {e.__class__.__name__}") from e

        if not response.ok:
            raise CredentialError(
                f"Token refresh failed with status {response.status_code}",
                status=response.status_code,
                retry_after_ms=_retry_after_from(response.headers),
            )
        try:
            data = response.json()
        except ValueError:
            data = {}
        access_token = (data or {}).get("access_token")
        if not access_token:
            raise CredentialError("No access token received", status=response.status_code)
        return Credential(
            access_token=access_token,
            expires_in=int(data.get("expires_in") or 3600),
            token_type=data.get("token_type") or "Bearer",
        )

    def fetch_playback(self, credential: Credential) -> Optional[dict]:
        """Return the raw currently-playing payload, or None for 204 (nothing playing)."""
        # requests_session=False: plain requests calls, no urllib3 retry adapter underneath
        sp = Spotify(
            auth=credential.access_token,
            requests_session=False,
            requests_timeout=self._timeout_sec,
            retries=0,
        )
        try:
            return sp.currently_playing()
        except SpotifyException as e:
            raise PlaybackError(
                f"Spotify API error {e.http_status}",
                status=e.http_status,
                retry_after_ms=_retry_after_from(e.headers),
            ) from e
        except requests.RequestException as e:
            raise PlaybackError(f"Playback request failed: {e.__class__.__name__}") from e

    def close(self) -> None:
        self._session.close()


def _oauth() -> SpotifyOAuth:
    cache = MemoryCacheHandler()
    return SpotifyOAuth(
        client_id=SPOTIFY_CLIENT_ID,
        client_secret=SPOTIFY_CLIENT_SECRET,
        redirect_uri=SPOTIFY_REDIRECT_URI,
        scope=SPOTIFY_SCOPES,
        cache_handler=cache,
        open_browser=False,
    )


def get_authorize_url() -> Optional[str]:
    """Spotify consent URL for the one-time login, or None without app credentials."""
    if not SPOTIFY_CLIENT_ID or not SPOTIFY_CLIENT_SECRET:
        return None
    return _oauth().get_authorize_url()


def exchange_code_for_refresh_token(code: str) -> Optional[str]:
    """Exchange an OAuth code for tokens and return the refresh token, or None on failure."""
    if not SPOTIFY_CLIENT_ID or not SPOTIFY_CLIENT_SECRET:
        return None
    auth = _oauth()
    try:
        auth.get_access_token(code=code, check_cache=False)
    except (SpotifyOauthError, requests.RequestException) as e:
        logger.warning("Spotify code exchange failed: %s", e.__class__.__name__)
        return None
    token_info = auth.cache_handler.get_cached_token() or {}
    return token_info.get("refresh_token")
