"""Zoom adapter -- Server-to-Server OAuth plus the Zoom REST API v2.

Access tokens come from the account-credentials grant and are cached
until shortly before they expire. Meetings are created as scheduled
meetings with registration enabled; attendees are added as registrants,
one request per attendee (Zoom has no batch registrant endpoint).
"""

from __future__ import annotations

import base64
import time
from datetime import datetime, timedelta, timezone

import httpx
import structlog

from src.clubmeet.core.errors import (
    RemoteAuthError,
    RemoteServiceError,
    RemoteTransientError,
)
from src.clubmeet.meetings.platforms.base import PlatformAdapter
from src.clubmeet.meetings.schemas import (
    PENDING_MEET_LINK,
    Attendee,
    Platform,
    RemoteEvent,
    RemoteEventRequest,
)

logger = structlog.get_logger(__name__)

TOKEN_URL = "https://zoom.us/oauth/token"
API_BASE_URL = "https://api.zoom.us/v2"

# Refresh this many seconds before the token's stated expiry
TOKEN_EXPIRY_MARGIN = 60


def _zoom_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _parse_zoom_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class ZoomAdapter(PlatformAdapter):
    """Async client for Zoom meetings and registrants.

    Args:
        account_id: Zoom account id for the account-credentials grant.
        client_id: Server-to-Server OAuth app client id.
        client_secret: Server-to-Server OAuth app client secret.
        user_id: Zoom user (or "me") that hosts created meetings.
        timezone: IANA timezone label sent with created meetings.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    platform = Platform.ZOOM
    supports_batch_add = False

    # Timeouts per operation type
    TIMEOUT_MUTATE = 30.0  # create/register operations
    TIMEOUT_READ = 10.0    # get/list operations

    def __init__(
        self,
        account_id: str,
        client_id: str,
        client_secret: str,
        user_id: str = "me",
        timezone: str = "Asia/Kolkata",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._account_id = account_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._user_id = user_id
        self._timezone = timezone
        self._transport = transport
        self._token: str | None = None
        self._token_expires_at = 0.0

    def _client(self, timeout: float, headers: dict | None = None) -> httpx.AsyncClient:
        """Create a new httpx client with specified timeout."""
        return httpx.AsyncClient(
            headers=headers or {},
            timeout=timeout,
            transport=self._transport,
        )

    # ── Auth ─────────────────────────────────────────────────────────────

    async def _get_token(self) -> str:
        """Return a cached access token, exchanging credentials when stale.

        Raises:
            RemoteAuthError: If credentials are missing or rejected.
        """
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        if not (self._account_id and self._client_id and self._client_secret):
            raise RemoteAuthError("Zoom credentials are not configured", platform=self.platform.value)

        basic = base64.b64encode(f"{self._client_id}:{self._client_secret}".encode()).decode()
        try:
            async with self._client(self.TIMEOUT_READ) as client:
                response = await client.post(
                    TOKEN_URL,
                    params={"grant_type": "account_credentials", "account_id": self._account_id},
                    headers={"Authorization": f"Basic {basic}"},
                )
        except httpx.TransportError as exc:
            raise RemoteTransientError(
                f"Zoom token exchange failed: {exc}", platform=self.platform.value
            ) from exc

        if response.status_code in (400, 401, 403):
            raise RemoteAuthError(
                "Zoom rejected the account credentials",
                platform=self.platform.value,
                status_code=response.status_code,
            )
        self._check_status(response, "token")

        data = response.json()
        self._token = data["access_token"]
        self._token_expires_at = (
            time.monotonic() + int(data.get("expires_in", 3600)) - TOKEN_EXPIRY_MARGIN
        )
        logger.info("zoom.token_acquired", expires_in=data.get("expires_in"))
        return self._token

    def _check_status(self, response: httpx.Response, operation: str) -> None:
        status = response.status_code
        if status < 400:
            return
        message = f"Zoom {operation} failed with HTTP {status}: {response.text[:200]}"
        if status == 401:
            self._token = None
            raise RemoteAuthError(message, platform=self.platform.value, status_code=status)
        if status in (408, 429) or status >= 500:
            raise RemoteTransientError(message, platform=self.platform.value, status_code=status)
        raise RemoteServiceError(message, platform=self.platform.value, status_code=status)

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        timeout: float,
        **kwargs,
    ) -> httpx.Response:
        token = await self._get_token()
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        try:
            async with self._client(timeout, headers) as client:
                return await client.request(method, f"{API_BASE_URL}{path}", **kwargs)
        except httpx.TransportError as exc:
            raise RemoteTransientError(
                f"Zoom {operation} failed: {exc}", platform=self.platform.value
            ) from exc

    # ── Meetings ─────────────────────────────────────────────────────────

    @staticmethod
    def _to_remote_event(data: dict) -> RemoteEvent:
        start = _parse_zoom_time(data.get("start_time"))
        duration = data.get("duration")
        return RemoteEvent(
            remote_id=str(data["id"]),
            join_url=data.get("join_url") or PENDING_MEET_LINK,
            host_url=data.get("start_url"),
            title=data.get("topic"),
            description=data.get("agenda"),
            start_time=start,
            end_time=start + timedelta(minutes=duration) if start and duration else None,
            has_video_entry=bool(data.get("join_url")),
        )

    async def create_event(self, request: RemoteEventRequest) -> RemoteEvent:
        """Create a scheduled meeting hosted by the configured user.

        POST /users/{user_id}/meetings with registration enabled and
        automatic registrant approval.
        """
        duration = int((request.end_time - request.start_time).total_seconds() // 60)
        payload = {
            "topic": request.title,
            "type": 2,
            "start_time": _zoom_time(request.start_time),
            "duration": duration,
            "timezone": self._timezone,
            "agenda": request.description,
            "settings": {
                "host_video": True,
                "participant_video": True,
                "join_before_host": False,
                "mute_upon_entry": True,
                "approval_type": 0,
                "registration_type": 1,
            },
        }
        response = await self._request(
            "POST",
            f"/users/{self._user_id}/meetings",
            "create",
            self.TIMEOUT_MUTATE,
            json=payload,
        )
        self._check_status(response, "create")
        remote = self._to_remote_event(response.json())
        logger.info("zoom.meeting_created", meeting_id=remote.remote_id)
        return remote

    async def add_attendee(self, remote_id: str, attendee: Attendee) -> None:
        """Register one attendee. POST /meetings/{id}/registrants."""
        first_name, _, last_name = (attendee.name or attendee.email.split("@")[0]).partition(" ")
        payload = {"email": attendee.email, "first_name": first_name}
        if last_name:
            payload["last_name"] = last_name
        response = await self._request(
            "POST",
            f"/meetings/{remote_id}/registrants",
            "add_registrant",
            self.TIMEOUT_MUTATE,
            json=payload,
        )
        self._check_status(response, "add_registrant")
        logger.info("zoom.registrant_added", meeting_id=remote_id)

    async def get_attendees(self, remote_id: str) -> list[Attendee]:
        attendees: list[Attendee] = []
        params: dict = {"page_size": 300}
        while True:
            response = await self._request(
                "GET",
                f"/meetings/{remote_id}/registrants",
                "list_registrants",
                self.TIMEOUT_READ,
                params=params,
            )
            self._check_status(response, "list_registrants")
            data = response.json()
            for r in data.get("registrants", []):
                name = f"{r.get('first_name', '')} {r.get('last_name', '')}".strip()
                attendees.append(Attendee(email=r["email"], name=name))
            token = data.get("next_page_token")
            if not token:
                return attendees
            params = {"page_size": 300, "next_page_token": token}

    async def get_event(self, remote_id: str) -> RemoteEvent | None:
        response = await self._request(
            "GET", f"/meetings/{remote_id}", "get", self.TIMEOUT_READ
        )
        if response.status_code == 404:
            return None
        self._check_status(response, "get")
        return self._to_remote_event(response.json())

    async def search_events(
        self, time_min: datetime, time_max: datetime, query: str | None = None
    ) -> list[RemoteEvent]:
        """List the host's scheduled meetings starting within the window.

        Zoom cannot filter by time or text server-side, so both are
        applied here.
        """
        events: list[RemoteEvent] = []
        params: dict = {"type": "scheduled", "page_size": 300}
        while True:
            response = await self._request(
                "GET",
                f"/users/{self._user_id}/meetings",
                "list",
                self.TIMEOUT_READ,
                params=params,
            )
            self._check_status(response, "list")
            data = response.json()
            for item in data.get("meetings", []):
                event = self._to_remote_event(item)
                if event.start_time is None or not (time_min <= event.start_time < time_max):
                    continue
                if query:
                    text = f"{event.title or ''} {event.description or ''}".lower()
                    if query.lower() not in text:
                        continue
                events.append(event)
            token = data.get("next_page_token")
            if not token:
                return events
            params = {"type": "scheduled", "page_size": 300, "next_page_token": token}
