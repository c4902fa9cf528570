"""Conferencing platform adapters (Google Meet via Calendar API, Zoom REST)."""

from __future__ import annotations

from src.clubmeet.core.errors import ValidationError
from src.clubmeet.meetings.platforms.base import PlatformAdapter
from src.clubmeet.meetings.schemas import Platform


class PlatformRegistry:
    """Configured adapters keyed by Platform."""

    def __init__(self, adapters: list[PlatformAdapter] | None = None) -> None:
        self._adapters: dict[Platform, PlatformAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: PlatformAdapter) -> None:
        self._adapters[adapter.platform] = adapter

    def get(self, platform: Platform) -> PlatformAdapter:
        """Return the adapter for ``platform``.

        Raises:
            ValidationError: If the platform is not configured.
        """
        adapter = self._adapters.get(platform)
        if adapter is None:
            raise ValidationError(f"Platform {platform.value} is not configured")
        return adapter

    def __contains__(self, platform: object) -> bool:
        return platform in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)


__all__ = ["PlatformAdapter", "PlatformRegistry"]
