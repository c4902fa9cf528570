"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready) checks.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.clubmeet.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check. No external dependencies are checked."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: verifies database connectivity and configured platforms.

    Returns 200 if the database answers, 503 otherwise.
    """
    checks: dict = {"database": "ok"}

    database = getattr(request.app.state, "database", None)
    if database is None:
        checks["database"] = "not_initialized"
    else:
        try:
            await database.ping()
        except Exception as e:
            checks["database"] = "error"
            checks["database_error"] = str(e)

    platforms = getattr(request.app.state, "platforms", None)
    checks["platforms"] = len(platforms) if platforms is not None else 0

    healthy = checks["database"] == "ok"
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ready" if healthy else "degraded", "checks": checks},
    )
