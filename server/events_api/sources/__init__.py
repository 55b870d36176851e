"""
Event source adapters.

Each source implements ``fetch(window) -> Iterator[NormalizedEvent]``.
"""

from events_api.sources.base import (
    EventSource,
    NormalizedEvent,
    SourceKind,
    TimeWindow,
    resolve_window,
)
from events_api.sources.google_calendar import GoogleCalendarSource
from events_api.sources.image_flyers import ImageFlyerSource
from events_api.sources.mobilize import MobilizeSource

__all__ = [
    "EventSource",
    "NormalizedEvent",
    "SourceKind",
    "TimeWindow",
    "resolve_window",
    "GoogleCalendarSource",
    "ImageFlyerSource",
    "MobilizeSource",
]
