"""Shared fixtures for the clubmeet test suite.

Provides:
- In-memory subscription and meeting repositories
- A scripted fake platform adapter registered as google-meet
- A fully wired MeetingOrchestrator with retries that never sleep
- A fixed clock at 2025-06-01 (Asia/Kolkata)
"""

from __future__ import annotations

import pytest

from src.clubmeet.meetings.calendar_sync import CalendarSynchronizer
from src.clubmeet.meetings.enrollment import AttendeeEnrollment
from src.clubmeet.meetings.orchestrator import MeetingOrchestrator
from src.clubmeet.meetings.platforms import PlatformRegistry
from src.clubmeet.meetings.schemas import MeetingDefaults, Platform
from tests.fakes import (
    FIXED_NOW,
    MARKER,
    TZ,
    FakePlatformAdapter,
    InMemoryMeetingRepository,
    InMemorySubscriptionRepository,
    no_sleep,
)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def subscription_repo() -> InMemorySubscriptionRepository:
    return InMemorySubscriptionRepository()


@pytest.fixture
def meeting_repo() -> InMemoryMeetingRepository:
    return InMemoryMeetingRepository()


@pytest.fixture
def google_adapter() -> FakePlatformAdapter:
    return FakePlatformAdapter(Platform.GOOGLE_MEET, supports_batch_add=True)


@pytest.fixture
def platforms(google_adapter) -> PlatformRegistry:
    return PlatformRegistry([google_adapter])


@pytest.fixture
def defaults() -> MeetingDefaults:
    return MeetingDefaults(
        platform=Platform.GOOGLE_MEET,
        start_time="21:00",
        duration_minutes=60,
        title="GOALETE Club Daily Session",
        timezone=TZ,
    )


@pytest.fixture
def synchronizer(meeting_repo) -> CalendarSynchronizer:
    return CalendarSynchronizer(meeting_repo, TZ, MARKER)


@pytest.fixture
def enrollment(subscription_repo, meeting_repo, platforms) -> AttendeeEnrollment:
    return AttendeeEnrollment(subscription_repo, meeting_repo, platforms)


@pytest.fixture
def orchestrator(meeting_repo, platforms, synchronizer, enrollment, defaults) -> MeetingOrchestrator:
    return MeetingOrchestrator(
        meeting_repo,
        platforms,
        synchronizer,
        enrollment,
        defaults,
        sleep=no_sleep,
    )
