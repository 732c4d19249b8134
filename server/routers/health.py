"""
Health check endpoints for deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (is the room store wired up?)
- /metrics - Room/session counts for monitoring
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from game import GamePhase

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Service references (set during app initialization)
_room_manager = None
_sessions = None


def set_health_dependencies(room_manager=None, sessions=None):
    """Set dependencies for health checks."""
    global _room_manager, _sessions
    _room_manager = room_manager
    _sessions = sessions


@router.get("/health")
async def health_check():
    """
    Basic liveness check - is the app running?

    This endpoint should always return 200 if the process is alive.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """Readiness check. Returns 503 until the room store is configured."""
    ready = _room_manager is not None
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ok" if ready else "degraded",
            "checks": {"room_manager": {"status": "ok" if ready else "not_configured"}},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.get("/metrics")
async def metrics():
    """Expose room and connection counts."""
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _room_manager is not None:
        rooms = _room_manager.rooms
        metrics_data.update({
            "active_rooms": len(rooms),
            "total_players": sum(len(r.players) for r in rooms.values()),
            "games_in_progress": sum(1 for r in rooms.values() if r.game.phase == GamePhase.PLAYING),
        })

    if _sessions is not None:
        metrics_data["connected_websockets"] = len(_sessions.sessions)

    return metrics_data
