import os
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.observability.logger import init_sentry

router = APIRouter()

# Global state for last notification dispatch
_last_dispatch: Optional[Dict[str, Any]] = None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def update_last_dispatch(
    event_id: str,
    driver: str,
    recipients_count: int,
    success: bool = True,
    error: Optional[str] = None
) -> None:
    """
    Record the outcome of the most recent attendee notification.

    Args:
        event_id: Id of the event the alert was about
        driver: Push driver used
        recipients_count: Number of devices the alert was handed to
        success: Whether the transport accepted the alert
        error: Optional error message
    """
    global _last_dispatch

    _last_dispatch = {
        "time": _now_iso(),
        "event_id": event_id,
        "driver": driver,
        "recipients_count": recipients_count,
        "success": success,
    }

    if error is not None:
        _last_dispatch["error"] = error


def get_last_dispatch() -> Optional[Dict[str, Any]]:
    """Get the last dispatch information."""
    return _last_dispatch


@router.get("/healthz")
async def health_check() -> JSONResponse:
    """
    Health check endpoint with last dispatch information.

    Failed notifications show up here as a background warning; they never
    fail the scheduling request itself.
    """
    response = {
        "status": "ok",
        "timestamp": _now_iso(),
    }

    last_dispatch = get_last_dispatch()
    if last_dispatch:
        response["last_dispatch"] = last_dispatch
        if not last_dispatch["success"]:
            response["warnings"] = [f"Last notification failed: {last_dispatch.get('error')}"]

    obs_enabled = os.getenv("OBS_ENABLED", "false").lower() == "true"
    response["observability"] = {
        "enabled": obs_enabled,
        "sentry_configured": bool(os.getenv("SENTRY_DSN")),
    }

    return JSONResponse(status_code=200, content=response)


@router.get("/healthz/live")
async def liveness_check() -> JSONResponse:
    """Liveness check endpoint for container orchestration."""
    return JSONResponse(status_code=200, content={
        "status": "alive",
        "timestamp": _now_iso(),
    })


# Initialize Sentry on module import if enabled
init_sentry()
