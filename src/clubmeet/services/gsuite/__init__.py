"""Google Workspace integration for Calendar events with Google Meet links.

Provides service account authentication with domain-wide delegation and a
Calendar API v3 wrapper used by the Google Meet platform adapter.
"""

from src.clubmeet.services.gsuite.auth import GSuiteAuthManager
from src.clubmeet.services.gsuite.calendar import GoogleCalendarService

__all__ = [
    "GoogleCalendarService",
    "GSuiteAuthManager",
]
