"""
Shared types for event sources: the normalized event shape, the time window
and the adapter base class.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Iterator, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from events_api.errors import ConfigurationMissing, ValidationError

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SourceKind(str, Enum):
    CALENDAR = "calendar"
    ORGANIZING = "organizing"
    IMAGE = "image"


class NormalizedEvent(BaseModel):
    """One event occurrence in the shape served to the front end."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    summary: str = ""
    description: Optional[str] = None
    date: Optional[str] = None
    end_date: Optional[str] = Field(default=None, alias="endDate")
    image: Optional[str] = None
    org: Optional[str] = None
    url: Optional[str] = None
    event_type: Optional[str] = Field(default=None, alias="eventType")
    source: SourceKind


def parse_timestamp(value: object) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or timestamp into an aware UTC datetime.

    Date-only values are midnight UTC and naive timestamps are read as UTC.
    Returns None for anything unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    """Render an aware datetime as an RFC 3339 UTC string ending in Z."""
    value = value.astimezone(timezone.utc).replace(microsecond=0)
    return value.isoformat().replace("+00:00", "Z")


def epoch_to_datetime(seconds: object) -> Optional[datetime]:
    if seconds is None or isinstance(seconds, bool):
        return None
    try:
        return datetime.fromtimestamp(float(seconds), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def epoch_to_iso(seconds: object) -> Optional[str]:
    moment = epoch_to_datetime(seconds)
    return to_iso(moment) if moment else None


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end); a None bound is open."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def contains(self, moment: Optional[datetime]) -> bool:
        if moment is None:
            return False
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment >= self.end:
            return False
        return True

    @property
    def start_epoch(self) -> Optional[int]:
        return int(self.start.timestamp()) if self.start else None

    @property
    def end_epoch(self) -> Optional[int]:
        return int(self.end.timestamp()) if self.end else None

    @property
    def start_iso(self) -> Optional[str]:
        return to_iso(self.start) if self.start else None

    @property
    def end_iso(self) -> Optional[str]:
        return to_iso(self.end) if self.end else None


def resolve_window(
    time_min: Optional[str],
    time_max: Optional[str],
    *,
    default_days: int,
    now: Optional[datetime] = None,
) -> TimeWindow:
    """
    Build the request window from the timeMin/timeMax query parameters.

    A missing start is the beginning of the current UTC day; a missing end is
    the start plus ``default_days`` days.
    """
    start = _parse_bound("timeMin", time_min)
    end = _parse_bound("timeMax", time_max)
    if start is None:
        now = now or datetime.now(timezone.utc)
        start = now.astimezone(timezone.utc).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
    if end is None:
        end = start + timedelta(days=default_days)
    if end <= start:
        raise ValidationError("timeMax must be later than timeMin")
    return TimeWindow(start=start, end=end)


def _parse_bound(name: str, raw: Optional[str]) -> Optional[datetime]:
    if raw is None or not raw.strip():
        return None
    parsed = parse_timestamp(raw)
    if parsed is None:
        raise ValidationError(f"{name} must be an ISO-8601 timestamp, got {raw!r}")
    return parsed


class EventSource:
    """
    Base class for adapters that turn one upstream feed into NormalizedEvents.

    Subclasses implement ``_fetch`` which performs the upstream round trip and
    returns the mapped events. ``fetch`` applies the sponsor allow-list and
    degrades missing configuration to an empty result.
    """

    name: str = ""
    kind: SourceKind

    def __init__(self, sponsor_allowlist: Sequence[str] | None = None):
        self.sponsor_allowlist = frozenset(sponsor_allowlist or ())

    def fetch(self, window: TimeWindow) -> Iterator[NormalizedEvent]:
        try:
            events = self._fetch(window)
        except ConfigurationMissing as exc:
            logger.warning("Source %s is not configured: %s", self.name, exc.message)
            return iter(())
        if self.sponsor_allowlist:
            return (event for event in events if event.org in self.sponsor_allowlist)
        return iter(events)

    def _fetch(self, window: TimeWindow) -> Iterable[NormalizedEvent]:
        raise NotImplementedError
