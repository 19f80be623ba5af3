"""Operator diagnostics: scheduler state and last fetch outcome."""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from nowplaying.api.state import AppState, get_state

router = APIRouter()


class SyncStatus(BaseModel):
    configured: bool
    scheduler_state: Optional[str] = None
    last_interval_ms: Optional[int] = None
    last_failure: Optional[str] = None
    is_playing: bool = False
    fetch_in_flight: bool = False


@router.get("", response_model=SyncStatus)
def get_status(state: AppState = Depends(get_state)):
    """Whether credentials are set, what the poller is doing, and the last failure class if any."""
    if state.engine is None or state.scheduler is None:
        return SyncStatus(configured=False)
    scheduler = state.scheduler
    failure = scheduler.last_failure
    return SyncStatus(
        configured=True,
        scheduler_state=scheduler.state.value,
        last_interval_ms=scheduler.last_interval_ms,
        last_failure=failure.classification.value if failure else None,
        is_playing=state.engine.last_known_playing(),
        fetch_in_flight=state.engine.coalescer.in_flight(state.engine.resource),
    )
