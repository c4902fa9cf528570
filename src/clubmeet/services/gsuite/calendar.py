"""Google Calendar service for Meet-enabled events.

Thin synchronous wrapper over the Calendar API v3 ``events`` resource,
using GSuiteAuthManager for credentials with domain-wide delegation. The
async GoogleMeetAdapter runs these calls in worker threads.

Also hosts the static helpers that read conference data out of an event
dict (Meet URL, video entry point, attendees).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog

from src.clubmeet.services.gsuite.auth import GSuiteAuthManager

logger = structlog.get_logger(__name__)


class GoogleCalendarService:
    """Google Calendar API v3 operations on one calendar.

    Args:
        auth_manager: GSuiteAuthManager instance.
        calendar_id: Calendar to operate on ("primary" for the delegated user).
    """

    def __init__(self, auth_manager: GSuiteAuthManager, calendar_id: str = "primary") -> None:
        self._auth_manager = auth_manager
        self._calendar_id = calendar_id

    def _events(self) -> Any:
        return self._auth_manager.get_calendar_service().events()

    def insert_event(self, body: dict, with_conference: bool = True) -> dict:
        """Insert an event without notifying guests.

        Args:
            body: Event resource body.
            with_conference: Pass conferenceDataVersion=1 so a
                ``conferenceData.createRequest`` in the body is honoured.

        Returns:
            The created event dict.
        """
        kwargs: dict[str, Any] = {
            "calendarId": self._calendar_id,
            "body": body,
            "sendUpdates": "none",
        }
        if with_conference:
            kwargs["conferenceDataVersion"] = 1
        return self._events().insert(**kwargs).execute()

    def get_event(self, event_id: str, fields: str | None = None) -> dict:
        """Fetch a single calendar event by ID.

        Args:
            event_id: Google Calendar event ID.
            fields: Optional partial-response field mask.

        Returns:
            Google Calendar event dict.
        """
        kwargs: dict[str, Any] = {"calendarId": self._calendar_id, "eventId": event_id}
        if fields:
            kwargs["fields"] = fields
        return self._events().get(**kwargs).execute()

    def patch_attendees(self, event_id: str, attendees: list[dict]) -> dict:
        """Replace the attendee list of an event.

        Invitations go to external-domain guests only.
        """
        return (
            self._events()
            .patch(
                calendarId=self._calendar_id,
                eventId=event_id,
                body={"attendees": attendees},
                sendUpdates="externalOnly",
            )
            .execute()
        )

    def list_events(
        self,
        time_min: datetime,
        time_max: datetime,
        query: str | None = None,
    ) -> list[dict]:
        """Fetch single events starting within a time window, ordered by start.

        Args:
            time_min: Start of time window (aware).
            time_max: End of time window (aware).
            query: Optional free-text filter applied by the API.

        Returns:
            List of Google Calendar event dicts.
        """
        kwargs: dict[str, Any] = {
            "calendarId": self._calendar_id,
            "timeMin": time_min.isoformat(),
            "timeMax": time_max.isoformat(),
            "singleEvents": True,
            "orderBy": "startTime",
        }
        if query:
            kwargs["q"] = query

        events_result = self._events().list(**kwargs).execute()
        return events_result.get("items", [])

    @staticmethod
    def has_google_meet_link(event: dict) -> bool:
        """Check if the event has a video conference entry point.

        Looks in conferenceData.entryPoints for an entry with type "video".
        """
        conference = event.get("conferenceData", {})
        entry_points = conference.get("entryPoints", [])
        return any(ep.get("entryPointType") == "video" for ep in entry_points)

    @staticmethod
    def get_meet_url(event: dict) -> str | None:
        """Extract the Google Meet URL from an event.

        Prefers the video entry point, falls back to hangoutLink.

        Returns:
            Google Meet URL string, or None if not issued yet.
        """
        conference = event.get("conferenceData", {})
        for ep in conference.get("entryPoints", []):
            if ep.get("entryPointType") == "video" and ep.get("uri"):
                return ep["uri"]
        return event.get("hangoutLink") or None

    @staticmethod
    def get_attendees(event: dict) -> list[dict]:
        """Extract attendee list from an event.

        Returns:
            List of dicts with 'email' and 'name' keys.
        """
        attendees = event.get("attendees", [])
        return [
            {
                "email": a.get("email", ""),
                "name": a.get("displayName", a.get("email", "")),
            }
            for a in attendees
        ]
