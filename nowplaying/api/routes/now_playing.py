"""GET /now-playing: cached Spotify snapshot with cache directives for CDNs."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from nowplaying.api.state import AppState, get_state
from nowplaying.core.errors import FetchFailed
from nowplaying.core.freshness import headers_for

logger = logging.getLogger(__name__)

router = APIRouter()

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
}


def _error(message: str) -> JSONResponse:
    return JSONResponse(
        {"error": message, "is_playing": False},
        status_code=500,
        headers=SECURITY_HEADERS,
    )


@router.get("/now-playing")
def now_playing(state: AppState = Depends(get_state)):
    """Current playback; degrades to is_playing=false with a 500 on any terminal failure."""
    if state.engine is None:
        return _error("Server configuration error")
    try:
        snapshot = state.engine.current_snapshot()
    except FetchFailed as e:
        logger.warning("Now playing: %s", e)
        return _error(e.failure.summary)
    except Exception:
        logger.exception("Now playing: unexpected failure")
        return _error("Failed to fetch now playing")
    return JSONResponse(
        snapshot.to_response(),
        headers={**SECURITY_HEADERS, **headers_for(snapshot).as_headers()},
    )


@router.api_route("/now-playing", methods=["POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
def now_playing_method_not_allowed():
    return JSONResponse(
        {"error": "Method not allowed"},
        status_code=405,
        headers={"Allow": "GET, OPTIONS"},
    )
