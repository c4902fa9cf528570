"""Platform adapter abstract base class -- one interface per conferencing service.

Every conferencing backend (Google Meet, Zoom) implements this ABC. Only the
adapter knows the service's wire details: token acquisition, request
shaping and field mapping. Callers hand it aware instants; no timezone
math happens inside an adapter.

Adapters translate service failures into the domain taxonomy:
RemoteAuthError (credentials rejected), RemoteTransientError (timeouts,
429, 5xx) and RemoteServiceError (anything else).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from src.clubmeet.meetings.schemas import Attendee, Platform, RemoteEvent, RemoteEventRequest


class PlatformAdapter(ABC):
    """Abstract interface for conferencing service operations.

    Attributes:
        platform: The Platform this adapter serves.
        supports_batch_add: True if add_attendees adds a whole batch in one
            remote write; otherwise callers use add_attendee per invitee.
    """

    platform: Platform
    supports_batch_add: bool = False

    @abstractmethod
    async def create_event(self, request: RemoteEventRequest) -> RemoteEvent:
        """Create an event with a conference link, return it."""
        ...

    async def add_attendees(self, remote_id: str, attendees: list[Attendee]) -> list[Attendee]:
        """Add a batch of attendees in one remote write.

        Returns:
            The attendees the service accepted.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support batch add")

    @abstractmethod
    async def add_attendee(self, remote_id: str, attendee: Attendee) -> None:
        """Add one attendee to an event."""
        ...

    @abstractmethod
    async def get_attendees(self, remote_id: str) -> list[Attendee]:
        """List the attendees the service knows for an event."""
        ...

    @abstractmethod
    async def get_event(self, remote_id: str) -> RemoteEvent | None:
        """Fetch one event, None if the service does not know it."""
        ...

    @abstractmethod
    async def search_events(
        self, time_min: datetime, time_max: datetime, query: str | None = None
    ) -> list[RemoteEvent]:
        """List events starting within ``[time_min, time_max)``."""
        ...
