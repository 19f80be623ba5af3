"""Configuration: env, Spotify credentials, API bind, upstream timeouts."""
import logging
import os
import re
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Base paths (project root = parent of nowplaying package)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from project root so SPOTIFY_CLIENT_ID etc. are set
load_dotenv(BASE_DIR / ".env")

# API
API_HOST = os.getenv("NOWPLAYING_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("NOWPLAYING_API_PORT", "8000"))
LOG_LEVEL = os.getenv("NOWPLAYING_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(levelname)s: %(name)s: %(message)s"
ALLOWED_ORIGINS = [
    o.strip() for o in os.getenv("NOWPLAYING_ALLOWED_ORIGINS", "*").split(",") if o.strip()
]
# Login helper routes print the refresh token; keep them off unless asked for
ENABLE_LOGIN = os.getenv("NOWPLAYING_ENABLE_LOGIN", "0").lower() in ("1", "true", "yes")

# Spotify (refresh token obtained once via the login helper, then kept in .env)
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REFRESH_TOKEN = os.getenv("SPOTIFY_REFRESH_TOKEN", "")
SPOTIFY_REDIRECT_URI = os.getenv("SPOTIFY_REDIRECT_URI", "http://localhost:8000/api/spotify/callback")
SPOTIFY_SCOPES = "user-read-currently-playing user-read-playback-state"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"

# Upstream calls
REQUEST_TIMEOUT_SEC = float(os.getenv("NOWPLAYING_REQUEST_TIMEOUT_SEC", "10"))

_REQUIRED = {
    "SPOTIFY_CLIENT_ID": "Spotify application client ID (developer dashboard)",
    "SPOTIFY_CLIENT_SECRET": "Spotify application client secret (developer dashboard)",
    "SPOTIFY_REFRESH_TOKEN": "long-lived refresh token (run the login helper once)",
}
_APP_CREDENTIAL_RE = re.compile(r"^[a-zA-Z0-9]{32}$")


class ConfigurationError(Exception):
    """Required settings are missing."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


def validate_spotify_environment(env: dict[str, str] | None = None) -> dict[str, str]:
    """Return the three Spotify credentials or raise ConfigurationError naming what is missing.

    Values that do not look like Spotify credentials are only warned about; Spotify
    has changed formats before and the token endpoint is the real judge.
    """
    if env is None:
        env = {
            "SPOTIFY_CLIENT_ID": SPOTIFY_CLIENT_ID,
            "SPOTIFY_CLIENT_SECRET": SPOTIFY_CLIENT_SECRET,
            "SPOTIFY_REFRESH_TOKEN": SPOTIFY_REFRESH_TOKEN,
        }
    validated = {}
    missing = []
    for key in _REQUIRED:
        value = (env.get(key) or "").strip()
        if value:
            validated[key] = value
        else:
            missing.append(key)
    if missing:
        details = "; ".join(f"{key}: {_REQUIRED[key]}" for key in missing)
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)} ({details})",
            missing=missing,
        )

    for key in ("SPOTIFY_CLIENT_ID", "SPOTIFY_CLIENT_SECRET"):
        if not _APP_CREDENTIAL_RE.match(validated[key]):
            logger.warning("%s does not look like a 32-character Spotify credential", key)
    if len(validated["SPOTIFY_REFRESH_TOKEN"]) < 100:
        logger.warning("SPOTIFY_REFRESH_TOKEN looks too short; re-run the login helper if auth fails")
    return validated
