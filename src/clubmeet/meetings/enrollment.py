"""Attendee batch enrollment -- add only the new attendees to a meeting.

The diff is taken against the attendee ids already stored locally (no
remote re-fetch), so a candidate set that is a subset of the current
attendees costs no remote call at all. New attendees go to the platform
in one batch where the adapter supports it, otherwise one at a time.
Only attendees the platform accepted are linked locally, so anyone that
failed is retried by the next enrollment for the same meeting.
"""

from __future__ import annotations

import uuid

import structlog

from src.clubmeet.core.errors import ClubMeetError, RemoteAuthError
from src.clubmeet.meetings.platforms import PlatformRegistry
from src.clubmeet.meetings.repository import MeetingRepository
from src.clubmeet.meetings.schemas import Attendee, Meeting
from src.clubmeet.subscriptions.repository import SubscriptionRepository
from src.clubmeet.subscriptions.schemas import User

logger = structlog.get_logger(__name__)


class AttendeeEnrollment:
    """Enrolls users into a meeting remotely and locally.

    Args:
        users: Repository used to resolve user ids to e-mail addresses.
        meetings: MeetingRepository holding the attendee join table.
        platforms: Registry of configured platform adapters.
    """

    def __init__(
        self,
        users: SubscriptionRepository,
        meetings: MeetingRepository,
        platforms: PlatformRegistry,
    ) -> None:
        self._users = users
        self._meetings = meetings
        self._platforms = platforms

    async def _resolve(self, user_ids: list[uuid.UUID]) -> list[User]:
        users = await self._users.get_users(user_ids)
        found = {u.id for u in users}
        for missing in (uid for uid in user_ids if uid not in found):
            logger.warning("enrollment.user_not_found", user_id=str(missing))

        with_email = [u for u in users if u.email]
        for user in users:
            if not user.email:
                logger.warning("enrollment.user_without_email", user_id=str(user.id))
        return with_email

    async def _add_remote(self, meeting: Meeting, users: list[User]) -> list[User]:
        """Push users to the platform and return those it accepted."""
        adapter = self._platforms.get(meeting.platform)
        by_email = {u.email.lower(): u for u in users}
        attendees = [Attendee(email=u.email, name=u.display_name) for u in users]

        if adapter.supports_batch_add:
            try:
                accepted = await adapter.add_attendees(meeting.remote_event_id, attendees)
            except RemoteAuthError:
                raise
            except ClubMeetError as exc:
                logger.error(
                    "enrollment.batch_add_failed",
                    meeting_id=str(meeting.id),
                    count=len(attendees),
                    error=str(exc),
                )
                return []
            return [by_email[a.email.lower()] for a in accepted if a.email.lower() in by_email]

        accepted_users = []
        for attendee in attendees:
            try:
                await adapter.add_attendee(meeting.remote_event_id, attendee)
            except RemoteAuthError:
                raise
            except ClubMeetError as exc:
                logger.error(
                    "enrollment.attendee_add_failed",
                    meeting_id=str(meeting.id),
                    email=attendee.email,
                    error=str(exc),
                )
                continue
            accepted_users.append(by_email[attendee.email.lower()])
        return accepted_users

    async def enroll(self, meeting: Meeting, candidate_user_ids: list[uuid.UUID]) -> Meeting:
        """Add the candidates not yet attending to ``meeting``.

        Args:
            meeting: The meeting as currently stored (with attendee_ids).
            candidate_user_ids: Users that should attend.

        Returns:
            The meeting with its updated attendee ids, or the input
            unchanged when nobody new was enrolled.

        Raises:
            RemoteAuthError: If the platform rejects credentials.
        """
        current = set(meeting.attendee_ids)
        new_ids = [uid for uid in dict.fromkeys(candidate_user_ids) if uid not in current]
        if not new_ids:
            return meeting

        users = await self._resolve(new_ids)
        if not users:
            return meeting

        if meeting.remote_event_id:
            if meeting.platform not in self._platforms:
                logger.warning(
                    "enrollment.platform_unavailable",
                    meeting_id=str(meeting.id),
                    platform=meeting.platform.value,
                    skipped=len(users),
                )
                return meeting
            accepted = await self._add_remote(meeting, users)
        else:
            accepted = users

        if not accepted:
            return meeting

        updated = await self._meetings.add_attendees(meeting.id, [u.id for u in accepted])
        logger.info(
            "enrollment.completed",
            meeting_id=str(meeting.id),
            requested=len(new_ids),
            enrolled=len(accepted),
        )
        return updated
