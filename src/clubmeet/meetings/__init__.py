"""Meetings module -- the one conferencing session per civil day.

Provides the Meeting data layer, the platform adapters for Google Meet and
Zoom, calendar synchronization, attendee enrollment, and the
MeetingOrchestrator that ties them together.
"""
