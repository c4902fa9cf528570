"""REST endpoints for the admin layer: manage meetings and sync the calendar.

All endpoints require the admin key when one is configured. Domain errors
(NotFoundError, ConflictError, remote failures) are translated by the
handlers in src/clubmeet/api/errors.py.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.clubmeet.api.deps import (
    get_calendar_sync,
    get_meeting_repository,
    get_orchestrator,
    get_platforms,
    require_admin,
)
from src.clubmeet.config import get_settings
from src.clubmeet.core.errors import ValidationError
from src.clubmeet.core.timeutil import civil_today
from src.clubmeet.meetings.schemas import (
    CalendarSyncResult,
    ManageMeetingRequest,
    Meeting,
    MeetingOperation,
    Platform,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/meetings", tags=["meetings"], dependencies=[Depends(require_admin)])


# ── Request Schemas ──────────────────────────────────────────────────────────


class CalendarSyncRequest(BaseModel):
    """Range sync parameters; ``start_date`` defaults to today."""

    days: int = Field(default=30, ge=1, le=90)
    start_date: date | None = None
    prune: bool = False
    platform: Platform | None = None


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("/manage", response_model=Meeting)
async def manage_meeting(
    body: ManageMeetingRequest,
    orchestrator: Any = Depends(get_orchestrator),
) -> Meeting:
    """Get, create or get-or-create the meeting of a date and enroll users."""
    return await orchestrator.manage_meeting(body)


@router.get("", response_model=list[Meeting])
async def list_meetings(
    start_date: date | None = None,
    end_date: date | None = None,
    repository: Any = Depends(get_meeting_repository),
) -> list[Meeting]:
    """Stored meetings with ``start_date <= meeting_date < end_date``.

    ``start_date`` defaults to today and ``end_date`` to 30 days later.
    """
    start = start_date or civil_today(get_settings().TIMEZONE)
    end = end_date or start + timedelta(days=30)
    if end <= start:
        raise ValidationError("end_date must be after start_date")
    return await repository.list_between(start, end)


@router.get("/{meeting_date}", response_model=Meeting)
async def get_meeting(
    meeting_date: date,
    sync_from_calendar: bool = True,
    orchestrator: Any = Depends(get_orchestrator),
) -> Meeting:
    """Return the meeting of a date, looking on the platform if not stored. 404 if none."""
    return await orchestrator.manage_meeting(
        ManageMeetingRequest(
            meeting_date=meeting_date,
            operation=MeetingOperation.GET,
            sync_from_calendar=sync_from_calendar,
        )
    )


@router.post("/calendar-sync", response_model=CalendarSyncResult)
async def calendar_sync(
    body: CalendarSyncRequest,
    synchronizer: Any = Depends(get_calendar_sync),
    platforms: Any = Depends(get_platforms),
) -> CalendarSyncResult:
    """Reconcile stored meetings with the platform calendar over a range of days."""
    settings = get_settings()
    platform = body.platform or Platform(settings.DEFAULT_MEETING_PLATFORM)
    start = body.start_date or civil_today(settings.TIMEZONE)
    logger.info(
        "api.calendar_sync_requested",
        start=str(start),
        days=body.days,
        prune=body.prune,
        platform=platform.value,
    )
    return await synchronizer.sync_range(
        start, body.days, platforms.get(platform), prune=body.prune
    )
