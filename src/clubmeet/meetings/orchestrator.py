"""Meeting orchestrator -- the single entry point for "the meeting of date D".

manage_meeting walks one date through these states:

    ABSENT -> LOCAL_FOUND
    ABSENT -> REMOTE_SYNC_ATTEMPTED -> REMOTE_FOUND | CREATED

1. Local lookup by civil date (LOCAL_FOUND). A row still carrying the
   pending link sentinel gets one attempt to read its real link.
2. If absent and calendar sync is requested (and the operation is not
   create), search the platform for an out-of-band event and persist it.
3. If still absent, ``get`` fails with NotFoundError; otherwise a remote
   event is created (with retry) and persisted.
4. The requested users are enrolled and the meeting is returned.

There is no lock around steps 1-3. Two concurrent calls for the same date
are reconciled by the unique ``meeting_date`` constraint: the loser of the
insert re-fetches the winner's row (its remote event is left orphaned and
logged).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from src.clubmeet.core.errors import (
    ClubMeetError,
    ConflictError,
    DuplicateMeetingError,
    NotFoundError,
    RemoteAuthError,
)
from src.clubmeet.core.retry import call_with_retry
from src.clubmeet.core.timeutil import meeting_window
from src.clubmeet.meetings.calendar_sync import CalendarSynchronizer
from src.clubmeet.meetings.enrollment import AttendeeEnrollment
from src.clubmeet.meetings.platforms import PlatformRegistry
from src.clubmeet.meetings.platforms.base import PlatformAdapter
from src.clubmeet.meetings.repository import MeetingRepository
from src.clubmeet.meetings.schemas import (
    ManageMeetingRequest,
    Meeting,
    MeetingCreate,
    MeetingDefaults,
    MeetingOperation,
    MeetingUpdate,
    RemoteEventRequest,
)

logger = structlog.get_logger(__name__)


class MeetingOrchestrator:
    """Returns one authoritative Meeting per civil date.

    Args:
        repository: MeetingRepository for the meetings table.
        platforms: Registry of configured platform adapters.
        synchronizer: CalendarSynchronizer for out-of-band remote events.
        enrollment: AttendeeEnrollment for adding attendees.
        defaults: Values for fields a request leaves unset.
        sleep: Awaitable sleep used between retries (injectable for tests).
    """

    def __init__(
        self,
        repository: MeetingRepository,
        platforms: PlatformRegistry,
        synchronizer: CalendarSynchronizer,
        enrollment: AttendeeEnrollment,
        defaults: MeetingDefaults,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._repository = repository
        self._platforms = platforms
        self._synchronizer = synchronizer
        self._enrollment = enrollment
        self._defaults = defaults
        self._sleep = sleep

    async def manage_meeting(self, request: ManageMeetingRequest) -> Meeting:
        """Get, create or get-or-create the meeting of ``request.meeting_date``.

        Args:
            request: Date, platform, timing, attendees and operation.

        Returns:
            The meeting with its attendee ids after enrollment.

        Raises:
            ConflictError: operation=create and the date already has a
                meeting (``entity`` holds it).
            NotFoundError: operation=get and no meeting exists locally or
                on the platform.
            ValidationError: Unconfigured platform or bad timing values.
            RemoteAuthError: The platform rejected credentials.
            RemoteTransientError: Event creation still failing after retries.
        """
        day = request.meeting_date
        log = logger.bind(meeting_date=str(day), operation=request.operation.value)

        meeting = await self._repository.get_by_date(day)
        if meeting is not None:
            if request.operation == MeetingOperation.CREATE:
                raise ConflictError(f"A meeting already exists for {day}", entity=meeting)
            log.debug("meetings.local_found", meeting_id=str(meeting.id))
            meeting = await self.refresh_pending_link(meeting)
        else:
            platform = request.platform or self._defaults.platform
            if request.sync_from_calendar and request.operation != MeetingOperation.CREATE:
                meeting = await self._sync_from_calendar(request, self._platforms.get(platform))

            if meeting is None:
                if request.operation == MeetingOperation.GET:
                    raise NotFoundError(f"No meeting found for {day}")
                meeting = await self._create(request, self._platforms.get(platform))

        return await self._enrollment.enroll(meeting, request.user_ids)

    async def _sync_from_calendar(
        self, request: ManageMeetingRequest, adapter: PlatformAdapter
    ) -> Meeting | None:
        day = request.meeting_date
        try:
            found = await self._synchronizer.find_remote_event_for_date(day, adapter)
        except RemoteAuthError:
            raise
        except ClubMeetError as exc:
            logger.warning(
                "meetings.calendar_sync_failed",
                meeting_date=str(day),
                platform=adapter.platform.value,
                error=str(exc),
            )
            return None

        if found is None:
            return None

        try:
            meeting = await self._repository.create(found)
        except DuplicateMeetingError:
            logger.info("meetings.sync_insert_race", meeting_date=str(day))
            return await self._repository.get_by_date(day)

        logger.info(
            "meetings.remote_found",
            meeting_id=str(meeting.id),
            meeting_date=str(day),
            event_id=meeting.remote_event_id,
        )
        return meeting

    async def _create(self, request: ManageMeetingRequest, adapter: PlatformAdapter) -> Meeting:
        day = request.meeting_date
        start_time, end_time = meeting_window(
            day,
            request.start_time or self._defaults.start_time,
            request.duration_minutes or self._defaults.duration_minutes,
            self._defaults.timezone,
        )
        title = request.title or self._defaults.title
        description = request.description or self._defaults.description
        event_request = RemoteEventRequest(
            title=title,
            description=description,
            start_time=start_time,
            end_time=end_time,
            timezone=self._defaults.timezone,
        )

        remote = await call_with_retry(
            lambda: adapter.create_event(event_request),
            operation=f"{adapter.platform.value}.create_event",
            sleep=self._sleep,
        )

        data = MeetingCreate(
            meeting_date=day,
            platform=adapter.platform,
            meeting_link=remote.join_url,
            start_time=start_time,
            end_time=end_time,
            remote_event_id=remote.remote_id,
            host_url=remote.host_url,
            title=title,
            description=description,
            created_by=request.created_by,
            is_default=request.is_default,
        )
        try:
            meeting = await self._repository.create(data)
        except DuplicateMeetingError as exc:
            existing = await self._repository.get_by_date(day)
            logger.warning(
                "meetings.create_race",
                meeting_date=str(day),
                orphaned_event_id=remote.remote_id,
                platform=adapter.platform.value,
            )
            if existing is None:
                raise
            if request.operation == MeetingOperation.CREATE:
                raise ConflictError(str(exc), entity=existing) from exc
            return existing

        logger.info(
            "meetings.created",
            meeting_id=str(meeting.id),
            meeting_date=str(day),
            platform=adapter.platform.value,
            event_id=remote.remote_id,
            link_pending=meeting.link_pending,
        )
        return meeting

    async def refresh_pending_link(self, meeting: Meeting) -> Meeting:
        """Replace a pending link sentinel with the platform's real link.

        Lookup failures are logged and the meeting is returned unchanged.
        """
        if not meeting.link_pending or not meeting.remote_event_id:
            return meeting
        if meeting.platform not in self._platforms:
            return meeting

        adapter = self._platforms.get(meeting.platform)
        try:
            remote = await call_with_retry(
                lambda: adapter.get_event(meeting.remote_event_id),
                operation=f"{adapter.platform.value}.get_event",
                sleep=self._sleep,
            )
        except ClubMeetError as exc:
            logger.warning(
                "meetings.pending_link_check_failed",
                meeting_id=str(meeting.id),
                error=str(exc),
            )
            return meeting

        if remote is None or remote.link_pending:
            logger.info("meetings.link_still_pending", meeting_id=str(meeting.id))
            return meeting

        logger.info("meetings.link_resolved", meeting_id=str(meeting.id))
        return await self._repository.update(
            meeting.id, MeetingUpdate(meeting_link=remote.join_url)
        )
