"""One-time Spotify login: auth URL and callback that reveals the refresh token."""
import html

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from nowplaying.core.spotify_client import exchange_code_for_refresh_token, get_authorize_url

router = APIRouter()


@router.get("/auth-url")
def get_auth_url():
    """Return the Spotify OAuth authorization URL."""
    url = get_authorize_url()
    if url is None:
        return {"auth_url": None, "error": "SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET not set"}
    return {"auth_url": url}


@router.get("/callback")
def spotify_callback(code: str | None = None, error: str | None = None):
    """Exchange the code and show the refresh token to copy into .env as SPOTIFY_REFRESH_TOKEN."""
    if error or not code:
        return HTMLResponse(
            "<body><p>Missing authorization code. Open /api/spotify/auth-url and try again.</p></body>",
            status_code=400,
        )
    refresh_token = exchange_code_for_refresh_token(code)
    if not refresh_token:
        return HTMLResponse(
            "<body><p>Failed to link Spotify. Check backend logs and try again.</p></body>",
            status_code=500,
        )
    return HTMLResponse(
        "<body><p>Spotify linked. Add this to .env and restart:</p>"
        f"<pre>SPOTIFY_REFRESH_TOKEN={html.escape(refresh_token)}</pre></body>",
        headers={"Cache-Control": "no-store"},
    )
