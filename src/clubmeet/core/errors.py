"""Domain error taxonomy shared by every clubmeet component.

Expected outcomes (a conflicting meeting, a missing meeting) and remote
service failures are raised as subclasses of ClubMeetError so the HTTP
layer can translate them uniformly. Remote failures are split by whether
a retry can help: only RemoteTransientError is retried.
"""

from __future__ import annotations

from typing import Any


class ClubMeetError(Exception):
    """Base class for all domain errors."""


class ValidationError(ClubMeetError):
    """Malformed or out-of-range input. Never retried."""


class NotFoundError(ClubMeetError):
    """A requested entity does not exist."""


class ConflictError(ClubMeetError):
    """An operation conflicts with an existing entity.

    Attributes:
        entity: The existing entity that caused the conflict, if known.
    """

    def __init__(self, message: str, entity: Any = None) -> None:
        self.entity = entity
        super().__init__(message)


class DuplicateMeetingError(ConflictError):
    """Insert rejected by the one-meeting-per-day uniqueness constraint.

    Attributes:
        meeting_date: The civil date that already has a meeting row.
    """

    def __init__(self, meeting_date: Any) -> None:
        self.meeting_date = meeting_date
        super().__init__(f"A meeting already exists for {meeting_date}")


class RemoteError(ClubMeetError):
    """Base class for conferencing service failures.

    Attributes:
        platform: Platform identifier the failure came from.
        status_code: HTTP status returned by the service, if any.
    """

    def __init__(
        self,
        message: str,
        platform: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.platform = platform
        self.status_code = status_code
        super().__init__(message)


class RemoteAuthError(RemoteError):
    """Credentials rejected or missing. Not retryable."""


class RemoteTransientError(RemoteError):
    """Timeout, rate limit or 5xx. Retryable."""


class RemoteServiceError(RemoteError):
    """Any other rejection by the remote service. Not retryable."""
