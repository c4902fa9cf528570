"""Meeting repository -- async CRUD for meetings and their attendee links.

Provides MeetingRepository with the session_factory callable pattern.
A uniqueness violation on ``meeting_date`` is surfaced as
DuplicateMeetingError so callers can re-fetch the row another request
inserted first.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable, Iterable
from datetime import date, datetime, timezone

import structlog
from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.clubmeet.core.errors import DuplicateMeetingError, NotFoundError
from src.clubmeet.meetings.models import MeetingModel, meeting_attendees
from src.clubmeet.meetings.schemas import (
    Meeting,
    MeetingCreate,
    MeetingCreator,
    MeetingUpdate,
    Platform,
)

logger = structlog.get_logger(__name__)


# ── Serialization Helpers ───────────────────────────────────────────────────


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _model_to_meeting(model: MeetingModel, attendee_ids: list[uuid.UUID]) -> Meeting:
    """Convert MeetingModel plus its attendee ids to Meeting schema."""
    return Meeting(
        id=model.id,
        meeting_date=model.meeting_date,
        platform=Platform(model.platform),
        meeting_link=model.meeting_link,
        start_time=_aware(model.start_time),
        end_time=_aware(model.end_time),
        remote_event_id=model.remote_event_id,
        host_url=model.host_url,
        title=model.title,
        description=model.description or "",
        created_by=MeetingCreator(model.created_by),
        is_default=model.is_default,
        attendee_ids=attendee_ids,
        created_at=_aware(model.created_at),
        updated_at=_aware(model.updated_at or model.created_at),
    )


async def _attendee_ids(session: AsyncSession, meeting_id: uuid.UUID) -> list[uuid.UUID]:
    stmt = (
        select(meeting_attendees.c.user_id)
        .where(meeting_attendees.c.meeting_id == meeting_id)
        .order_by(meeting_attendees.c.added_at, meeting_attendees.c.user_id)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


# ── Repository ──────────────────────────────────────────────────────────────


class MeetingRepository:
    """Async CRUD operations for meetings and meeting attendees.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    # ── Meetings ─────────────────────────────────────────────────────────

    async def create(self, data: MeetingCreate) -> Meeting:
        """Insert the meeting row for ``data.meeting_date``.

        Args:
            data: MeetingCreate with remote event details.

        Returns:
            The persisted Meeting (no attendees yet).

        Raises:
            DuplicateMeetingError: If a row for that date already exists.
        """
        async for session in self._session_factory():
            model = MeetingModel(
                meeting_date=data.meeting_date,
                platform=data.platform.value,
                meeting_link=data.meeting_link,
                start_time=data.start_time,
                end_time=data.end_time,
                remote_event_id=data.remote_event_id,
                host_url=data.host_url,
                title=data.title,
                description=data.description,
                created_by=data.created_by.value,
                is_default=data.is_default,
            )
            session.add(model)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateMeetingError(data.meeting_date) from exc
            await session.refresh(model)
            logger.info(
                "meetings.row_created",
                meeting_id=str(model.id),
                meeting_date=str(model.meeting_date),
                platform=model.platform,
                created_by=model.created_by,
            )
            return _model_to_meeting(model, [])

    async def get_by_date(self, meeting_date: date) -> Meeting | None:
        """Get the meeting of a civil date, with its attendee ids."""
        async for session in self._session_factory():
            stmt = select(MeetingModel).where(MeetingModel.meeting_date == meeting_date)
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return _model_to_meeting(model, await _attendee_ids(session, model.id))

    async def list_between(self, start: date, end: date) -> list[Meeting]:
        """List meetings with ``start <= meeting_date < end`` ordered by date."""
        async for session in self._session_factory():
            stmt = (
                select(MeetingModel)
                .where(MeetingModel.meeting_date >= start, MeetingModel.meeting_date < end)
                .order_by(MeetingModel.meeting_date)
            )
            result = await session.execute(stmt)
            return [
                _model_to_meeting(m, await _attendee_ids(session, m.id))
                for m in result.scalars().all()
            ]

    async def update(self, meeting_id: uuid.UUID, data: MeetingUpdate) -> Meeting:
        """Apply the non-None fields of ``data``.

        Raises:
            NotFoundError: If the meeting does not exist.
        """
        async for session in self._session_factory():
            model = await session.get(MeetingModel, meeting_id)
            if model is None:
                raise NotFoundError(f"Meeting {meeting_id} not found")

            for field, value in data.model_dump(exclude_none=True).items():
                if field == "created_by":
                    value = value.value if isinstance(value, MeetingCreator) else value
                setattr(model, field, value)

            await session.commit()
            await session.refresh(model)
            return _model_to_meeting(model, await _attendee_ids(session, model.id))

    async def delete(self, meeting_id: uuid.UUID) -> bool:
        """Delete a meeting and its attendee links. Returns False if absent."""
        async for session in self._session_factory():
            model = await session.get(MeetingModel, meeting_id)
            if model is None:
                return False
            await session.execute(
                delete(meeting_attendees).where(meeting_attendees.c.meeting_id == meeting_id)
            )
            await session.delete(model)
            await session.commit()
            logger.info("meetings.row_deleted", meeting_id=str(meeting_id))
            return True

    # ── Attendees ────────────────────────────────────────────────────────

    async def add_attendees(
        self, meeting_id: uuid.UUID, user_ids: Iterable[uuid.UUID]
    ) -> Meeting:
        """Link users to a meeting; already-linked users are skipped.

        Raises:
            NotFoundError: If the meeting does not exist.
        """
        async for session in self._session_factory():
            model = await session.get(MeetingModel, meeting_id)
            if model is None:
                raise NotFoundError(f"Meeting {meeting_id} not found")

            current = set(await _attendee_ids(session, meeting_id))
            new_ids = [uid for uid in dict.fromkeys(user_ids) if uid not in current]
            if new_ids:
                await session.execute(
                    insert(meeting_attendees),
                    [{"meeting_id": meeting_id, "user_id": uid} for uid in new_ids],
                )
                await session.commit()
                logger.info(
                    "meetings.attendees_linked",
                    meeting_id=str(meeting_id),
                    added=len(new_ids),
                )
            return _model_to_meeting(model, await _attendee_ids(session, meeting_id))
