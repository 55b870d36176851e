"""
Mobilize source: grassroots organizing events with nested timeslots.

One Mobilize event can carry many timeslots; every timeslot that starts inside
the requested window becomes its own NormalizedEvent.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

from events_api.sources.base import (
    EventSource,
    NormalizedEvent,
    SourceKind,
    TimeWindow,
    epoch_to_datetime,
    epoch_to_iso,
    to_iso,
)
from events_api.sources.http import get_json

logger = logging.getLogger(__name__)


class MobilizeSource(EventSource):
    name = "organizing"
    kind = SourceKind.ORGANIZING

    def __init__(
        self,
        api_url: str = "https://api.mobilize.us/v1",
        *,
        organization_id: Optional[int] = None,
        max_pages: int = 10,
        timeout: float = 10.0,
        sponsor_allowlist=None,
    ):
        super().__init__(sponsor_allowlist)
        self.api_url = api_url.rstrip("/")
        self.organization_id = organization_id
        self.max_pages = max_pages
        self.timeout = timeout

    @property
    def events_url(self) -> str:
        if self.organization_id is not None:
            return f"{self.api_url}/organizations/{self.organization_id}/events"
        return f"{self.api_url}/events"

    def build_params(self, window: TimeWindow) -> list[tuple[str, str]]:
        # Mobilize takes repeated timeslot_start filters with gte_/lt_ prefixes.
        params: list[tuple[str, str]] = []
        if window.start is not None:
            params.append(("timeslot_start", f"gte_{window.start_epoch}"))
        if window.end is not None:
            params.append(("timeslot_start", f"lt_{window.end_epoch}"))
        return params

    def _fetch(self, window: TimeWindow) -> Iterable[NormalizedEvent]:
        raw_events: list[dict] = []
        url: Optional[str] = self.events_url
        params: Optional[list] = self.build_params(window)
        pages = 0
        while url and pages < self.max_pages:
            payload = get_json(url, params=params, timeout=self.timeout, source=self.name)
            raw_events.extend(payload.get("data") or [])
            url = payload.get("next")
            # The next link already carries the query string.
            params = None
            pages += 1
        if url:
            logger.warning("Stopped paging Mobilize after %d pages", pages)
        logger.info("Fetched %d Mobilize events in %d page(s)", len(raw_events), pages)
        return self._normalize(raw_events, window)

    def _normalize(
        self, raw_events: list[dict], window: TimeWindow
    ) -> Iterator[NormalizedEvent]:
        for event in raw_events:
            for timeslot in event.get("timeslots") or []:
                start = epoch_to_datetime(timeslot.get("start_date"))
                if not window.contains(start):
                    continue
                yield self._to_event(event, timeslot, to_iso(start))

    def _to_event(self, event: dict, timeslot: dict, start_iso: str) -> NormalizedEvent:
        sponsor = event.get("sponsor") or {}
        return NormalizedEvent(
            id=f"{self.kind.value}:{event.get('id')}:{timeslot.get('id', start_iso)}",
            summary=event.get("title") or "",
            description=event.get("description"),
            date=start_iso,
            end_date=epoch_to_iso(timeslot.get("end_date")),
            image=event.get("featured_image_url"),
            org=sponsor.get("name"),
            url=event.get("browser_url"),
            event_type=event.get("event_type"),
            source=self.kind,
        )
