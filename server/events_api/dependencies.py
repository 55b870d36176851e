"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from fastapi import Depends

from events_api.config import get_settings
from events_api.db import DbClient, InMemoryDbClient, PostgresDbClient
from events_api.sources import (
    EventSource,
    GoogleCalendarSource,
    ImageFlyerSource,
    MobilizeSource,
)

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_calendar_source: GoogleCalendarSource | None = None
_organizing_source: MobilizeSource | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        logger.warning("DATABASE_URL not set; using the in-memory database")
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_calendar_source() -> GoogleCalendarSource:
    global _calendar_source
    if _calendar_source:
        return _calendar_source

    settings = get_settings()
    _calendar_source = GoogleCalendarSource(
        settings.google_calendar_api_key,
        settings.google_calendar_id,
        org_name=settings.google_calendar_org_name,
        timeout=settings.source_timeout_seconds,
    )
    return _calendar_source


def get_organizing_source() -> EventSource:
    global _organizing_source
    if _organizing_source:
        return _organizing_source

    settings = get_settings()
    _organizing_source = MobilizeSource(
        settings.mobilize_api_url,
        organization_id=settings.mobilize_organization_id,
        max_pages=settings.mobilize_max_pages,
        timeout=settings.source_timeout_seconds,
        sponsor_allowlist=settings.mobilize_sponsors,
    )
    return _organizing_source


def get_image_source(db: DbClient = Depends(get_db_client)) -> EventSource:
    return ImageFlyerSource(db)


def get_event_sources(
    calendar: EventSource = Depends(get_calendar_source),
    organizing: EventSource = Depends(get_organizing_source),
    image: EventSource = Depends(get_image_source),
) -> list[EventSource]:
    """All sources merged by the aggregate endpoint, in emission order."""
    return [organizing, calendar, image]
