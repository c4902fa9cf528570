"""Calendar synchronizer -- reconcile local meeting rows with remote events.

Before the orchestrator creates a remote event for a date, it asks
``find_remote_event_for_date`` whether one was already created out-of-band
(e.g. by an admin directly in Google Calendar). A remote event counts when
its title or description carries the product marker (case-insensitive) and
it has a video-conference entry point.

``sync_range`` runs the same lookup over a span of days for the admin
calendar-sync endpoint, creating, refreshing and optionally pruning rows.
"""

from __future__ import annotations

from datetime import date, timedelta

import structlog

from src.clubmeet.core.errors import DuplicateMeetingError, RemoteAuthError, ValidationError
from src.clubmeet.core.timeutil import day_window
from src.clubmeet.meetings.platforms.base import PlatformAdapter
from src.clubmeet.meetings.repository import MeetingRepository
from src.clubmeet.meetings.schemas import (
    CalendarSyncResult,
    Meeting,
    MeetingCreate,
    MeetingCreator,
    MeetingUpdate,
    RemoteEvent,
)

logger = structlog.get_logger(__name__)

MAX_SYNC_DAYS = 90


class CalendarSynchronizer:
    """Looks up product events on a conferencing platform for civil dates.

    Args:
        repository: MeetingRepository used by sync_range.
        tz_name: Civil timezone defining each day's window.
        marker: Case-insensitive text identifying product events.
    """

    def __init__(self, repository: MeetingRepository, tz_name: str, marker: str) -> None:
        self._repository = repository
        self._tz_name = tz_name
        self._marker = marker.lower()

    def is_product_event(self, event: RemoteEvent) -> bool:
        text = f"{event.title or ''}\n{event.description or ''}".lower()
        return self._marker in text and event.has_video_entry and not event.link_pending

    async def find_remote_event_for_date(
        self, day: date, adapter: PlatformAdapter
    ) -> MeetingCreate | None:
        """Return the first product event on ``day`` mapped to a local row, or None.

        Raises:
            RemoteAuthError, RemoteTransientError, RemoteServiceError: From
                the adapter's search.
        """
        time_min, time_max = day_window(day, self._tz_name)
        events = await adapter.search_events(time_min, time_max, query=self._marker)

        for event in events:
            if not self.is_product_event(event):
                continue
            logger.info(
                "calendar_sync.remote_event_found",
                meeting_date=str(day),
                platform=adapter.platform.value,
                event_id=event.remote_id,
            )
            return MeetingCreate(
                meeting_date=day,
                platform=adapter.platform,
                meeting_link=event.join_url,
                start_time=event.start_time or time_min,
                end_time=event.end_time or event.start_time or time_min,
                remote_event_id=event.remote_id,
                host_url=event.host_url,
                title=event.title or "",
                description=event.description or "",
                created_by=MeetingCreator.CALENDAR_SYNC,
            )

        logger.debug(
            "calendar_sync.no_remote_event",
            meeting_date=str(day),
            platform=adapter.platform.value,
            candidates=len(events),
        )
        return None

    @staticmethod
    def _changes(local: Meeting, remote: MeetingCreate) -> MeetingUpdate | None:
        update = MeetingUpdate()
        if local.meeting_link != remote.meeting_link:
            update.meeting_link = remote.meeting_link
        if local.remote_event_id != remote.remote_event_id:
            update.remote_event_id = remote.remote_event_id
        if remote.title and local.title != remote.title:
            update.title = remote.title
        if local.description != remote.description:
            update.description = remote.description
        if local.start_time != remote.start_time:
            update.start_time = remote.start_time
        if local.end_time != remote.end_time:
            update.end_time = remote.end_time
        if not update.model_dump(exclude_none=True):
            return None
        return update

    async def sync_range(
        self,
        start: date,
        days: int,
        adapter: PlatformAdapter,
        prune: bool = False,
    ) -> CalendarSyncResult:
        """Reconcile ``days`` consecutive dates starting at ``start``.

        Missing rows are created, rows whose remote details changed are
        updated (attendees untouched), and with ``prune`` rows created by
        calendar sync whose remote event disappeared are deleted. Failures
        of a single day are collected in ``errors``.

        Raises:
            ValidationError: If ``days`` is outside 1..90.
            RemoteAuthError: If the platform rejects credentials.
        """
        if not 1 <= days <= MAX_SYNC_DAYS:
            raise ValidationError(f"days must be between 1 and {MAX_SYNC_DAYS}")

        result = CalendarSyncResult()
        for offset in range(days):
            day = start + timedelta(days=offset)
            result.processed += 1
            try:
                remote = await self.find_remote_event_for_date(day, adapter)
                local = await self._repository.get_by_date(day)

                if remote is not None and local is None:
                    try:
                        await self._repository.create(remote)
                        result.created += 1
                    except DuplicateMeetingError:
                        result.skipped += 1
                elif remote is not None and local is not None:
                    changes = (
                        self._changes(local, remote)
                        if local.platform == adapter.platform
                        else None
                    )
                    if changes is None:
                        result.skipped += 1
                    else:
                        await self._repository.update(local.id, changes)
                        result.updated += 1
                elif (
                    local is not None
                    and prune
                    and local.platform == adapter.platform
                    and local.created_by == MeetingCreator.CALENDAR_SYNC
                ):
                    await self._repository.delete(local.id)
                    result.deleted += 1
                else:
                    result.skipped += 1
            except RemoteAuthError:
                raise
            except Exception as exc:
                logger.error(
                    "calendar_sync.day_failed",
                    meeting_date=str(day),
                    error=str(exc),
                    exc_info=True,
                )
                result.errors.append(f"{day.isoformat()}: {exc}")

        logger.info(
            "calendar_sync.range_completed",
            start=str(start),
            days=days,
            created=result.created,
            updated=result.updated,
            deleted=result.deleted,
            errors=len(result.errors),
        )
        return result
