"""Google Workspace authentication with service account and domain-wide delegation.

Handles credential creation and service instance caching so the Calendar
API client is built once per impersonated user rather than per request.
"""

from __future__ import annotations

from typing import Any

import structlog
from google.oauth2 import service_account
from googleapiclient.discovery import build

logger = structlog.get_logger(__name__)

# Calendar read/write, needed to create events with Meet conference data
CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
]


class GSuiteAuthManager:
    """Manages Google API authentication with service account credentials.

    Caches service instances per (api, user_email) to avoid repeated
    credential builds and HTTP connection overhead.

    Args:
        service_account_file: Path to the service account JSON key.
        delegated_user_email: Workspace user impersonated by default.
    """

    def __init__(
        self,
        service_account_file: str,
        delegated_user_email: str,
    ) -> None:
        self._service_account_file = service_account_file
        self._delegated_user_email = delegated_user_email
        self._service_cache: dict[str, Any] = {}

    @property
    def delegated_user_email(self) -> str:
        return self._delegated_user_email

    def _build_credentials(
        self,
        user_email: str | None,
        scopes: list[str],
    ) -> service_account.Credentials:
        """Create service account credentials with optional user delegation.

        Args:
            user_email: If provided, applies domain-wide delegation via
                with_subject() so the service account impersonates this user.
            scopes: OAuth2 scopes for the credentials.

        Returns:
            Service account credentials, optionally delegated.
        """
        credentials = service_account.Credentials.from_service_account_file(
            self._service_account_file,
            scopes=scopes,
        )
        if user_email:
            credentials = credentials.with_subject(user_email)
        return credentials

    def get_calendar_service(self, user_email: str | None = None) -> Any:
        """Get a cached Calendar API v3 service instance for the delegated user.

        Args:
            user_email: Email to impersonate. Defaults to the configured
                delegated_user_email.

        Returns:
            Calendar API Resource object.
        """
        email = user_email or self._delegated_user_email
        cache_key = f"calendar:{email}"

        if cache_key not in self._service_cache:
            logger.info(
                "building_calendar_service",
                user_email=email,
            )
            credentials = self._build_credentials(email, CALENDAR_SCOPES)
            service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
            self._service_cache[cache_key] = service

        return self._service_cache[cache_key]
