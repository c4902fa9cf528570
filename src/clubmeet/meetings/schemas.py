"""Pydantic v2 schemas for the meeting domain.

Defines the data contracts shared by the repository, the platform adapters
and the orchestrator: the stored Meeting, the platform-neutral remote event
shapes, and the manage-meeting request.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from src.clubmeet.config import Settings

# Join link stored when the remote event exists but its conference link
# was not issued yet; replaced on a later read.
PENDING_MEET_LINK = "pending-meet-link-creation"


# ── Enums ────────────────────────────────────────────────────────────────────


class Platform(str, Enum):
    """Conferencing service hosting a meeting."""

    GOOGLE_MEET = "google-meet"
    ZOOM = "zoom"


class MeetingOperation(str, Enum):
    """What manage_meeting is allowed to do for the date."""

    GET_OR_CREATE = "get_or_create"
    CREATE = "create"
    GET = "get"


class MeetingCreator(str, Enum):
    ADMIN = "admin"
    SYSTEM_DEFAULT = "system-default"
    CALENDAR_SYNC = "calendar-sync"


# ── Remote Event Shapes ──────────────────────────────────────────────────────


class Attendee(BaseModel):
    """An invitee as the conferencing service sees it."""

    email: str
    name: str = ""


class RemoteEventRequest(BaseModel):
    """Platform-neutral create-event request. Times are aware instants."""

    title: str
    description: str
    start_time: datetime
    end_time: datetime
    timezone: str
    request_id: str = Field(default_factory=lambda: uuid.uuid4().hex)


class RemoteEvent(BaseModel):
    """A conferencing event as returned by a platform adapter."""

    remote_id: str
    join_url: str
    host_url: str | None = None
    title: str | None = None
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    has_video_entry: bool = True

    @property
    def link_pending(self) -> bool:
        return self.join_url == PENDING_MEET_LINK


# ── Meeting ──────────────────────────────────────────────────────────────────


class MeetingCreate(BaseModel):
    """Data for inserting the meeting row of one civil date."""

    meeting_date: date
    platform: Platform
    meeting_link: str
    start_time: datetime
    end_time: datetime
    remote_event_id: str | None = None
    host_url: str | None = None
    title: str
    description: str = ""
    created_by: MeetingCreator = MeetingCreator.ADMIN
    is_default: bool = False


class MeetingUpdate(BaseModel):
    """Partial update of remote-derived fields. None means unchanged."""

    meeting_link: str | None = None
    remote_event_id: str | None = None
    host_url: str | None = None
    title: str | None = None
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    created_by: MeetingCreator | None = None
    is_default: bool | None = None


class Meeting(BaseModel):
    """The stored meeting of one civil date with its attendee ids."""

    id: uuid.UUID
    meeting_date: date
    platform: Platform
    meeting_link: str
    start_time: datetime
    end_time: datetime
    remote_event_id: str | None = None
    host_url: str | None = None
    title: str
    description: str = ""
    created_by: MeetingCreator = MeetingCreator.ADMIN
    is_default: bool = False
    attendee_ids: list[uuid.UUID] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def link_pending(self) -> bool:
        return self.meeting_link == PENDING_MEET_LINK


# ── Requests & Results ───────────────────────────────────────────────────────


class MeetingDefaults(BaseModel):
    """Values used when a manage-meeting request leaves a field unset."""

    platform: Platform = Platform.GOOGLE_MEET
    start_time: str = "21:00"
    duration_minutes: int = 60
    title: str = "GOALETE Club Daily Session"
    description: str = ""
    timezone: str = "Asia/Kolkata"

    @classmethod
    def from_settings(cls, settings: Settings) -> MeetingDefaults:
        return cls(
            platform=Platform(settings.DEFAULT_MEETING_PLATFORM),
            start_time=settings.DEFAULT_MEETING_TIME,
            duration_minutes=settings.DEFAULT_MEETING_DURATION,
            title=settings.DEFAULT_MEETING_TITLE,
            description=settings.DEFAULT_MEETING_DESCRIPTION,
            timezone=settings.TIMEZONE,
        )


class ManageMeetingRequest(BaseModel):
    """Input to MeetingOrchestrator.manage_meeting.

    ``start_time`` is wall-clock ``HH:MM`` in the service timezone; unset
    fields fall back to MeetingDefaults.
    """

    meeting_date: date
    platform: Platform | None = None
    start_time: str | None = None
    duration_minutes: int | None = Field(default=None, gt=0, le=24 * 60)
    title: str | None = None
    description: str | None = None
    user_ids: list[uuid.UUID] = Field(default_factory=list)
    operation: MeetingOperation = MeetingOperation.GET_OR_CREATE
    sync_from_calendar: bool = True
    created_by: MeetingCreator = MeetingCreator.ADMIN
    is_default: bool = False

    @field_validator("start_time")
    @classmethod
    def _check_hhmm(cls, value: str | None) -> str | None:
        if value is None:
            return value
        hours, sep, minutes = value.partition(":")
        if not sep or not (hours.isdigit() and minutes.isdigit()):
            raise ValueError("start_time must be HH:MM")
        if not (0 <= int(hours) < 24 and 0 <= int(minutes) < 60):
            raise ValueError("start_time must be HH:MM")
        return value


class CalendarSyncResult(BaseModel):
    """Outcome counters of a calendar range sync."""

    processed: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
