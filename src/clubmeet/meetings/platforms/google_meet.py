"""Google Meet adapter -- Calendar events with hangoutsMeet conference data.

All Google API calls are blocking and run via asyncio.to_thread() so the
event loop is never held up. Attendee batches are applied with one
get(fields=attendees) + one patch, which keeps attendees added out-of-band
(e.g. by hand in Calendar) instead of overwriting them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

import httplib2
import structlog
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError

from src.clubmeet.core.errors import (
    RemoteAuthError,
    RemoteServiceError,
    RemoteTransientError,
)
from src.clubmeet.meetings.platforms.base import PlatformAdapter
from src.clubmeet.meetings.schemas import (
    PENDING_MEET_LINK,
    Attendee,
    Platform,
    RemoteEvent,
    RemoteEventRequest,
)
from src.clubmeet.services.gsuite.calendar import GoogleCalendarService

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_RATE_LIMIT_REASONS = ("ratelimitexceeded", "userratelimitexceeded", "quotaexceeded")


def _map_http_error(exc: HttpError, operation: str) -> Exception:
    status = exc.resp.status
    content = (exc.content or b"").decode("utf-8", errors="replace").lower()
    message = f"Google Calendar {operation} failed with HTTP {status}"
    if status == 403 and any(r in content for r in _RATE_LIMIT_REASONS):
        return RemoteTransientError(message, platform=Platform.GOOGLE_MEET.value, status_code=status)
    if status in (401, 403):
        return RemoteAuthError(message, platform=Platform.GOOGLE_MEET.value, status_code=status)
    if status in (408, 429) or status >= 500:
        return RemoteTransientError(message, platform=Platform.GOOGLE_MEET.value, status_code=status)
    return RemoteServiceError(message, platform=Platform.GOOGLE_MEET.value, status_code=status)


def _parse_event_time(value: dict | None) -> datetime | None:
    if not value or "dateTime" not in value:
        return None
    return datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))


def _default_name(email: str) -> str:
    return email.split("@")[0]


class GoogleMeetAdapter(PlatformAdapter):
    """Google Calendar API v3 adapter producing Google Meet links.

    Args:
        calendar: GoogleCalendarService bound to the meeting calendar.
        timezone: IANA timezone label written into event start/end.
    """

    platform = Platform.GOOGLE_MEET
    supports_batch_add = True

    def __init__(self, calendar: GoogleCalendarService, timezone: str) -> None:
        self._calendar = calendar
        self._timezone = timezone

    async def _call(self, operation: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except HttpError as exc:
            raise _map_http_error(exc, operation) from exc
        except RefreshError as exc:
            raise RemoteAuthError(
                f"Google credentials rejected during {operation}: {exc}",
                platform=self.platform.value,
            ) from exc
        except (TransportError, httplib2.HttpLib2Error, OSError) as exc:
            raise RemoteTransientError(
                f"Google Calendar {operation} failed: {exc}",
                platform=self.platform.value,
            ) from exc

    def _event_body(self, request: RemoteEventRequest) -> dict:
        return {
            "summary": request.title,
            "description": request.description,
            "start": {"dateTime": request.start_time.isoformat(), "timeZone": self._timezone},
            "end": {"dateTime": request.end_time.isoformat(), "timeZone": self._timezone},
            "location": "Google Meet (Online)",
            "status": "confirmed",
            "visibility": "private",
            "guestsCanInviteOthers": False,
            "guestsCanModify": False,
            "guestsCanSeeOtherGuests": True,
            "anyoneCanAddSelf": False,
            "transparency": "opaque",
            "reminders": {
                "useDefault": False,
                "overrides": [
                    {"method": "email", "minutes": 60},
                    {"method": "email", "minutes": 15},
                ],
            },
        }

    @staticmethod
    def _to_remote_event(event: dict) -> RemoteEvent:
        return RemoteEvent(
            remote_id=event["id"],
            join_url=GoogleCalendarService.get_meet_url(event) or PENDING_MEET_LINK,
            host_url=event.get("htmlLink"),
            title=event.get("summary"),
            description=event.get("description"),
            start_time=_parse_event_time(event.get("start")),
            end_time=_parse_event_time(event.get("end")),
            has_video_entry=GoogleCalendarService.has_google_meet_link(event),
        )

    async def create_event(self, request: RemoteEventRequest) -> RemoteEvent:
        """Insert a calendar event requesting a Meet conference.

        If Google rejects the conference request itself (HTTP 400), the
        event is inserted again without it and the link is read from
        ``hangoutLink`` or left pending.
        """
        body = self._event_body(request)
        body["conferenceData"] = {
            "createRequest": {
                "requestId": request.request_id,
                "conferenceSolutionKey": {"type": "hangoutsMeet"},
            }
        }
        try:
            event = await self._call("insert", self._calendar.insert_event, body)
        except RemoteServiceError as exc:
            if exc.status_code != 400:
                raise
            logger.warning(
                "google_meet.conference_request_rejected",
                request_id=request.request_id,
                error=str(exc),
            )
            event = await self._call(
                "insert", self._calendar.insert_event, self._event_body(request), False
            )

        remote = self._to_remote_event(event)
        logger.info(
            "google_meet.event_created",
            event_id=remote.remote_id,
            link_pending=remote.link_pending,
        )
        return remote

    async def add_attendees(self, remote_id: str, attendees: list[Attendee]) -> list[Attendee]:
        """Merge attendees into the event with a single patch.

        Attendees are marked accepted and get their e-mail local part as
        display name when no name is given. Invitations are sent to
        external domains only.
        """
        current = await self._call(
            "get", self._calendar.get_event, remote_id, "attendees"
        )
        existing = list(current.get("attendees", []))
        known = {a.get("email", "").lower() for a in existing}

        additions = []
        for attendee in attendees:
            key = attendee.email.lower()
            if key in known:
                continue
            known.add(key)
            additions.append(
                {
                    "email": attendee.email,
                    "displayName": attendee.name or _default_name(attendee.email),
                    "responseStatus": "accepted",
                }
            )

        if additions:
            await self._call(
                "patch", self._calendar.patch_attendees, remote_id, existing + additions
            )
        logger.info(
            "google_meet.attendees_added",
            event_id=remote_id,
            requested=len(attendees),
            added=len(additions),
        )
        return list(attendees)

    async def add_attendee(self, remote_id: str, attendee: Attendee) -> None:
        await self.add_attendees(remote_id, [attendee])

    async def get_attendees(self, remote_id: str) -> list[Attendee]:
        event = await self._call("get", self._calendar.get_event, remote_id, "attendees")
        return [Attendee(**a) for a in GoogleCalendarService.get_attendees(event)]

    async def get_event(self, remote_id: str) -> RemoteEvent | None:
        try:
            event = await self._call("get", self._calendar.get_event, remote_id)
        except RemoteServiceError as exc:
            if exc.status_code in (404, 410):
                return None
            raise
        return self._to_remote_event(event)

    async def search_events(
        self, time_min: datetime, time_max: datetime, query: str | None = None
    ) -> list[RemoteEvent]:
        events = await self._call(
            "list", self._calendar.list_events, time_min, time_max, query
        )
        return [self._to_remote_event(e) for e in events if e.get("status") != "cancelled"]
