"""FastAPI dependencies for services wired in the lifespan and for admin auth.

Services live on ``app.state``; a missing one means startup did not
configure it, and the endpoint answers 503 instead of failing obscurely.
"""

from __future__ import annotations

import secrets
from typing import Any

from fastapi import HTTPException, Request, status

from src.clubmeet.config import get_settings


def _from_state(request: Request, name: str, label: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} not initialized",
        )
    return service


def get_orchestrator(request: Request) -> Any:
    """Retrieve MeetingOrchestrator from app.state, 503 if not available."""
    return _from_state(request, "meeting_orchestrator", "Meeting orchestrator")


def get_eligibility_service(request: Request) -> Any:
    """Retrieve SubscriptionEligibilityService from app.state, 503 if not available."""
    return _from_state(request, "eligibility_service", "Eligibility service")


def get_calendar_sync(request: Request) -> Any:
    return _from_state(request, "calendar_synchronizer", "Calendar synchronizer")


def get_platforms(request: Request) -> Any:
    return _from_state(request, "platforms", "Platform registry")


def get_daily_job(request: Request) -> Any:
    return _from_state(request, "daily_job", "Daily meeting job")


def get_subscription_repository(request: Request) -> Any:
    return _from_state(request, "subscription_repository", "Subscription repository")


def get_meeting_repository(request: Request) -> Any:
    return _from_state(request, "meeting_repository", "Meeting repository")


async def require_admin(request: Request) -> None:
    """Require ``Authorization: Bearer <ADMIN_API_KEY>`` when a key is configured.

    Raises:
        HTTPException(401): If the key is configured and missing or wrong.
    """
    expected = get_settings().ADMIN_API_KEY
    if not expected:
        return
    auth_header = request.headers.get("Authorization", "")
    provided = auth_header[7:] if auth_header.startswith("Bearer ") else ""
    if not provided or not secrets.compare_digest(provided, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin key",
            headers={"WWW-Authenticate": "Bearer"},
        )
