"""Daily meeting job -- ensure today's meeting exists and enroll its subscribers.

Invoked by an external scheduler through the trigger endpoint or
``scripts/run_daily_meeting.py``. There is no scheduling loop in process.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import date, datetime

import structlog
from pydantic import BaseModel

from src.clubmeet.core.timeutil import civil_today
from src.clubmeet.meetings.orchestrator import MeetingOrchestrator
from src.clubmeet.meetings.schemas import (
    ManageMeetingRequest,
    MeetingCreator,
    MeetingOperation,
)
from src.clubmeet.subscriptions.filters import ActiveOn, ByStatus
from src.clubmeet.subscriptions.repository import SubscriptionRepository
from src.clubmeet.subscriptions.schemas import SubscriptionStatus

logger = structlog.get_logger(__name__)


class DailyRunResult(BaseModel):
    """Summary of one daily job run."""

    meeting_date: date
    meeting_id: uuid.UUID
    meeting_link: str
    link_pending: bool
    active_subscribers: int
    attendees: int


class DailyMeetingJob:
    """Builds the manage-meeting request for a day's active subscribers.

    Args:
        orchestrator: MeetingOrchestrator.
        subscriptions: Repository queried for active subscriptions.
        tz_name: Civil timezone deciding "today".
        clock: Returns the current aware instant; defaults to the wall clock.
    """

    def __init__(
        self,
        orchestrator: MeetingOrchestrator,
        subscriptions: SubscriptionRepository,
        tz_name: str,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._subscriptions = subscriptions
        self._tz_name = tz_name
        self._clock = clock

    async def active_user_ids(self, day: date) -> list[uuid.UUID]:
        """User ids holding an active subscription that covers ``day``."""
        subscriptions = await self._subscriptions.list_subscriptions(
            [ByStatus(status=SubscriptionStatus.ACTIVE), ActiveOn(day=day)]
        )
        return list(dict.fromkeys(s.user_id for s in subscriptions))

    async def run(self, day: date | None = None) -> DailyRunResult:
        """Get or create the meeting of ``day`` (default today) and enroll subscribers.

        A meeting created here is marked as the system default. A link
        still pending afterwards gets one more lookup before reporting.
        """
        target = day or civil_today(self._tz_name, self._clock() if self._clock else None)
        user_ids = await self.active_user_ids(target)
        logger.info(
            "daily_job.started",
            meeting_date=str(target),
            active_subscribers=len(user_ids),
        )

        meeting = await self._orchestrator.manage_meeting(
            ManageMeetingRequest(
                meeting_date=target,
                user_ids=user_ids,
                operation=MeetingOperation.GET_OR_CREATE,
                sync_from_calendar=True,
                created_by=MeetingCreator.SYSTEM_DEFAULT,
                is_default=True,
            )
        )
        if meeting.link_pending:
            meeting = await self._orchestrator.refresh_pending_link(meeting)

        result = DailyRunResult(
            meeting_date=target,
            meeting_id=meeting.id,
            meeting_link=meeting.meeting_link,
            link_pending=meeting.link_pending,
            active_subscribers=len(user_ids),
            attendees=len(meeting.attendee_ids),
        )
        logger.info("daily_job.completed", **result.model_dump(mode="json"))
        return result
