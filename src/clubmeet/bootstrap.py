"""Construct the service graph from settings.

Shared by the FastAPI lifespan and the command-line trigger so both run
the same wiring: one Database, repositories built on its session factory,
the configured platform adapters, and the services composed from them.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from src.clubmeet.config import Settings
from src.clubmeet.core.database import Database
from src.clubmeet.meetings.calendar_sync import CalendarSynchronizer
from src.clubmeet.meetings.daily import DailyMeetingJob
from src.clubmeet.meetings.enrollment import AttendeeEnrollment
from src.clubmeet.meetings.orchestrator import MeetingOrchestrator
from src.clubmeet.meetings.platforms import PlatformRegistry
from src.clubmeet.meetings.platforms.google_meet import GoogleMeetAdapter
from src.clubmeet.meetings.platforms.zoom import ZoomAdapter
from src.clubmeet.meetings.repository import MeetingRepository
from src.clubmeet.meetings.schemas import MeetingDefaults
from src.clubmeet.services.gsuite import GoogleCalendarService, GSuiteAuthManager
from src.clubmeet.subscriptions.repository import SubscriptionRepository
from src.clubmeet.subscriptions.resolver import SubscriptionEligibilityService

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    database: Database
    platforms: PlatformRegistry
    subscription_repository: SubscriptionRepository
    meeting_repository: MeetingRepository
    eligibility_service: SubscriptionEligibilityService
    calendar_synchronizer: CalendarSynchronizer
    meeting_orchestrator: MeetingOrchestrator
    daily_job: DailyMeetingJob


def build_platforms(settings: Settings) -> PlatformRegistry:
    """Register an adapter for every platform with credentials configured."""
    registry = PlatformRegistry()

    sa_path = settings.get_service_account_path()
    if sa_path and settings.GOOGLE_DELEGATED_USER_EMAIL:
        auth = GSuiteAuthManager(
            service_account_file=sa_path,
            delegated_user_email=settings.GOOGLE_DELEGATED_USER_EMAIL,
        )
        calendar = GoogleCalendarService(auth, calendar_id=settings.GOOGLE_CALENDAR_ID)
        registry.register(GoogleMeetAdapter(calendar, timezone=settings.TIMEZONE))
        logger.info("bootstrap.platform_registered", platform="google-meet")
    else:
        logger.warning("bootstrap.platform_not_configured", platform="google-meet")

    if settings.zoom_configured:
        registry.register(
            ZoomAdapter(
                account_id=settings.ZOOM_ACCOUNT_ID,
                client_id=settings.ZOOM_CLIENT_ID,
                client_secret=settings.ZOOM_CLIENT_SECRET,
                user_id=settings.ZOOM_USER_ID,
                timezone=settings.TIMEZONE,
            )
        )
        logger.info("bootstrap.platform_registered", platform="zoom")
    else:
        logger.warning("bootstrap.platform_not_configured", platform="zoom")

    return registry


def build_services(
    settings: Settings,
    database: Database,
    platforms: PlatformRegistry | None = None,
) -> ServiceContainer:
    """Build every service on top of ``database``.

    Args:
        settings: Application settings.
        database: Database whose session factory the repositories use.
        platforms: Pre-built registry (tests); built from settings if None.
    """
    platforms = platforms if platforms is not None else build_platforms(settings)
    subscriptions = SubscriptionRepository(session_factory=database.session)
    meetings = MeetingRepository(session_factory=database.session)

    synchronizer = CalendarSynchronizer(
        meetings, tz_name=settings.TIMEZONE, marker=settings.CALENDAR_EVENT_MARKER
    )
    orchestrator = MeetingOrchestrator(
        repository=meetings,
        platforms=platforms,
        synchronizer=synchronizer,
        enrollment=AttendeeEnrollment(subscriptions, meetings, platforms),
        defaults=MeetingDefaults.from_settings(settings),
    )
    return ServiceContainer(
        database=database,
        platforms=platforms,
        subscription_repository=subscriptions,
        meeting_repository=meetings,
        eligibility_service=SubscriptionEligibilityService(
            subscriptions,
            tz_name=settings.TIMEZONE,
            max_days=settings.MAX_SUBSCRIPTION_DAYS,
        ),
        calendar_synchronizer=synchronizer,
        meeting_orchestrator=orchestrator,
        daily_job=DailyMeetingJob(orchestrator, subscriptions, tz_name=settings.TIMEZONE),
    )
