"""
Google Calendar source: the site's own public community calendar.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional
from urllib.parse import quote

from events_api.errors import ConfigurationMissing
from events_api.sources.base import EventSource, NormalizedEvent, SourceKind, TimeWindow
from events_api.sources.http import get_json

logger = logging.getLogger(__name__)

CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3/calendars/{calendar_id}/events"
MAX_PAGES = 10


class GoogleCalendarSource(EventSource):
    name = "calendar"
    kind = SourceKind.CALENDAR

    def __init__(
        self,
        api_key: Optional[str],
        calendar_id: str,
        *,
        org_name: str = "Connect Utah Today",
        timeout: float = 10.0,
        sponsor_allowlist=None,
    ):
        super().__init__(sponsor_allowlist)
        self.api_key = api_key
        self.calendar_id = calendar_id
        self.org_name = org_name
        self.timeout = timeout

    @property
    def url(self) -> str:
        return CALENDAR_API_URL.format(calendar_id=quote(self.calendar_id, safe=""))

    def fetch_page(
        self, window: TimeWindow, page_token: Optional[str] = None
    ) -> dict:
        """Return one page of the native Google response for the window."""
        if not self.api_key:
            raise ConfigurationMissing("Google Calendar API key not configured")
        params = {
            "key": self.api_key,
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        if window.start is not None:
            params["timeMin"] = window.start_iso
        if window.end is not None:
            params["timeMax"] = window.end_iso
        if page_token:
            params["pageToken"] = page_token
        return get_json(
            self.url,
            params=params,
            timeout=self.timeout,
            source=self.name,
        )

    def _fetch(self, window: TimeWindow) -> Iterable[NormalizedEvent]:
        items: list[dict] = []
        page_token = None
        for _ in range(MAX_PAGES):
            payload = self.fetch_page(window, page_token)
            items.extend(payload.get("items") or [])
            page_token = payload.get("nextPageToken")
            if not page_token:
                break
        else:
            logger.warning("Stopped paging Google Calendar after %d pages", MAX_PAGES)
        logger.info("Fetched %d Google Calendar events", len(items))
        return self._normalize(items)

    def _normalize(self, items: list[dict]) -> Iterator[NormalizedEvent]:
        for item in items:
            start = item.get("start") or {}
            end = item.get("end") or {}
            yield NormalizedEvent(
                id=f"{self.kind.value}:{item.get('id')}",
                summary=item.get("summary") or "",
                description=item.get("description") or "",
                date=start.get("dateTime") or start.get("date"),
                end_date=end.get("dateTime") or end.get("date"),
                image=None,
                org=self.org_name,
                url=item.get("htmlLink"),
                event_type="community",
                source=self.kind,
            )
