"""In-memory test doubles for repositories and platform adapters.

Shared by the orchestrator, enrollment, sync, daily job and API tests so
they run without a database or any conferencing service.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone

from src.clubmeet.core.errors import (
    DuplicateMeetingError,
    NotFoundError,
    RemoteTransientError,
)
from src.clubmeet.meetings.platforms.base import PlatformAdapter
from src.clubmeet.meetings.schemas import (
    Attendee,
    Meeting,
    MeetingCreate,
    MeetingUpdate,
    Platform,
    RemoteEvent,
    RemoteEventRequest,
)
from src.clubmeet.subscriptions.filters import (
    ActiveOn,
    ByPlanType,
    ByStatus,
    ByUser,
    EndsAfter,
    OverlapsRange,
    SubscriptionCriterion,
)
from src.clubmeet.subscriptions.schemas import (
    Subscription,
    SubscriptionCreate,
    SubscriptionStatus,
    User,
    UserCreate,
)

TZ = "Asia/Kolkata"
MARKER = "goalete"

# 11:30 in Kolkata: civil "today" is 2025-06-01.
FIXED_NOW = datetime(2025, 6, 1, 6, 0, tzinfo=timezone.utc)


def matches(criterion: SubscriptionCriterion, subscription: Subscription) -> bool:
    """Evaluate one criterion the way its SQL clause would."""
    if isinstance(criterion, ByUser):
        return subscription.user_id == criterion.user_id
    if isinstance(criterion, ByStatus):
        return subscription.status == criterion.status
    if isinstance(criterion, ByPlanType):
        return subscription.plan_type in criterion.plan_types
    if isinstance(criterion, ActiveOn):
        return subscription.start_date <= criterion.day < subscription.end_date
    if isinstance(criterion, EndsAfter):
        return subscription.end_date > criterion.day
    if isinstance(criterion, OverlapsRange):
        return subscription.overlaps(criterion.start, criterion.end)
    raise TypeError(f"Unsupported criterion: {criterion!r}")


# ── Repositories ─────────────────────────────────────────────────────────────


class InMemorySubscriptionRepository:
    """In-memory SubscriptionRepository for testing without database."""

    def __init__(self) -> None:
        self.users: dict[uuid.UUID, User] = {}
        self.subscriptions: list[Subscription] = []
        self.get_users_calls = 0

    async def create_user(self, data: UserCreate) -> User:
        user = User(id=uuid.uuid4(), created_at=datetime.now(timezone.utc), **data.model_dump())
        self.users[user.id] = user
        return user

    async def get_user_by_email(self, email: str) -> User | None:
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    async def get_users(self, user_ids) -> list[User]:
        self.get_users_calls += 1
        return [self.users[uid] for uid in dict.fromkeys(user_ids) if uid in self.users]

    async def create_subscription(self, data: SubscriptionCreate) -> Subscription:
        now = datetime.now(timezone.utc)
        sub = Subscription(id=uuid.uuid4(), created_at=now, updated_at=now, **data.model_dump())
        self.subscriptions.append(sub)
        return sub

    async def list_subscriptions(
        self, criteria: list[SubscriptionCriterion], latest_end_first: bool = False
    ) -> list[Subscription]:
        found = [s for s in self.subscriptions if all(matches(c, s) for c in criteria)]
        if latest_end_first:
            found.sort(key=lambda s: s.end_date, reverse=True)
        return found

    async def update_status(
        self, subscription_id: uuid.UUID, status: SubscriptionStatus
    ) -> Subscription | None:
        for index, sub in enumerate(self.subscriptions):
            if sub.id == subscription_id:
                self.subscriptions[index] = sub.model_copy(update={"status": status})
                return self.subscriptions[index]
        return None

    # helpers

    async def add_user(self, first_name: str, email: str | None) -> User:
        return await self.create_user(UserCreate(first_name=first_name, email=email))

    async def add_subscription(self, user: User, plan_type, start: date, end: date, **kwargs) -> Subscription:
        return await self.create_subscription(
            SubscriptionCreate(
                user_id=user.id, plan_type=plan_type, start_date=start, end_date=end, **kwargs
            )
        )


class InMemoryMeetingRepository:
    """In-memory MeetingRepository honouring the one-row-per-date constraint."""

    def __init__(self) -> None:
        self.meetings: dict[uuid.UUID, Meeting] = {}
        self.create_calls = 0
        self.add_attendee_calls: list[list[uuid.UUID]] = []
        # Meeting to insert "concurrently" just before the next create().
        self.race_with: MeetingCreate | None = None

    def _by_date(self, day: date) -> Meeting | None:
        for meeting in self.meetings.values():
            if meeting.meeting_date == day:
                return meeting
        return None

    def _store(self, data: MeetingCreate) -> Meeting:
        now = datetime.now(timezone.utc)
        meeting = Meeting(id=uuid.uuid4(), created_at=now, updated_at=now, **data.model_dump())
        self.meetings[meeting.id] = meeting
        return meeting

    async def create(self, data: MeetingCreate) -> Meeting:
        self.create_calls += 1
        if self.race_with is not None:
            self._store(self.race_with)
            self.race_with = None
        if self._by_date(data.meeting_date) is not None:
            raise DuplicateMeetingError(data.meeting_date)
        return self._store(data)

    async def get_by_date(self, meeting_date: date) -> Meeting | None:
        return self._by_date(meeting_date)

    async def list_between(self, start: date, end: date) -> list[Meeting]:
        return sorted(
            (m for m in self.meetings.values() if start <= m.meeting_date < end),
            key=lambda m: m.meeting_date,
        )

    async def update(self, meeting_id: uuid.UUID, data: MeetingUpdate) -> Meeting:
        meeting = self.meetings.get(meeting_id)
        if meeting is None:
            raise NotFoundError(f"Meeting {meeting_id} not found")
        updated = meeting.model_copy(update=data.model_dump(exclude_none=True))
        self.meetings[meeting_id] = updated
        return updated

    async def delete(self, meeting_id: uuid.UUID) -> bool:
        return self.meetings.pop(meeting_id, None) is not None

    async def add_attendees(self, meeting_id: uuid.UUID, user_ids) -> Meeting:
        meeting = self.meetings.get(meeting_id)
        if meeting is None:
            raise NotFoundError(f"Meeting {meeting_id} not found")
        ids = list(user_ids)
        self.add_attendee_calls.append(ids)
        merged = list(meeting.attendee_ids)
        merged.extend(uid for uid in dict.fromkeys(ids) if uid not in merged)
        updated = meeting.model_copy(update={"attendee_ids": merged})
        self.meetings[meeting_id] = updated
        return updated


# ── Platform Adapter ─────────────────────────────────────────────────────────


class FakePlatformAdapter(PlatformAdapter):
    """Records every remote call; failures can be scripted per e-mail or per call."""

    def __init__(
        self,
        platform: Platform = Platform.GOOGLE_MEET,
        supports_batch_add: bool = True,
        join_url: str = "https://meet.google.com/abc-defg-hij",
    ) -> None:
        self.platform = platform
        self.supports_batch_add = supports_batch_add
        self.join_url = join_url
        self.create_requests: list[RemoteEventRequest] = []
        self.batch_calls: list[list[Attendee]] = []
        self.single_calls: list[Attendee] = []
        self.search_calls: list[tuple[datetime, datetime]] = []
        self.get_event_calls: list[str] = []
        self.remote_attendees: dict[str, list[Attendee]] = {}
        self.events: list[RemoteEvent] = []
        self.create_failures: list[Exception] = []
        self.failing_emails: set[str] = set()
        self.batch_error: Exception | None = None
        self.search_error: Exception | None = None
        self.event_lookup: dict[str, RemoteEvent | None] = {}

    @property
    def remote_calls(self) -> int:
        return (
            len(self.create_requests)
            + len(self.batch_calls)
            + len(self.single_calls)
            + len(self.get_event_calls)
        )

    async def create_event(self, request: RemoteEventRequest) -> RemoteEvent:
        self.create_requests.append(request)
        if self.create_failures:
            raise self.create_failures.pop(0)
        remote_id = f"evt-{len(self.create_requests)}"
        self.remote_attendees[remote_id] = []
        return RemoteEvent(
            remote_id=remote_id,
            join_url=self.join_url,
            title=request.title,
            description=request.description,
            start_time=request.start_time,
            end_time=request.end_time,
        )

    async def add_attendees(self, remote_id: str, attendees: list[Attendee]) -> list[Attendee]:
        self.batch_calls.append(list(attendees))
        if self.batch_error is not None:
            raise self.batch_error
        self.remote_attendees.setdefault(remote_id, []).extend(attendees)
        return list(attendees)

    async def add_attendee(self, remote_id: str, attendee: Attendee) -> None:
        self.single_calls.append(attendee)
        if attendee.email in self.failing_emails:
            raise RemoteTransientError(f"registrant rejected: {attendee.email}", platform="zoom")
        self.remote_attendees.setdefault(remote_id, []).append(attendee)

    async def get_attendees(self, remote_id: str) -> list[Attendee]:
        return list(self.remote_attendees.get(remote_id, []))

    async def get_event(self, remote_id: str) -> RemoteEvent | None:
        self.get_event_calls.append(remote_id)
        return self.event_lookup.get(remote_id)

    async def search_events(
        self, time_min: datetime, time_max: datetime, query: str | None = None
    ) -> list[RemoteEvent]:
        self.search_calls.append((time_min, time_max))
        if self.search_error is not None:
            raise self.search_error
        return [
            e for e in self.events
            if e.start_time is not None and time_min <= e.start_time < time_max
        ]


def remote_event_at(
    start: datetime,
    title: str = "GOALETE Club Session",
    join_url: str = "https://meet.google.com/out-of-band",
    remote_id: str = "oob-1",
    has_video_entry: bool = True,
    description: str = "",
) -> RemoteEvent:
    return RemoteEvent(
        remote_id=remote_id,
        join_url=join_url,
        title=title,
        description=description,
        start_time=start,
        end_time=start + timedelta(hours=1),
        has_video_entry=has_video_entry,
    )


async def no_sleep(seconds: float) -> None:
    return None
