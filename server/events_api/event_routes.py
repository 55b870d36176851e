"""
HTTP routes serving normalized events, per source and aggregated.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from events_api.aggregator import aggregate, collect
from events_api.config import Settings, get_settings
from events_api.dependencies import (
    get_calendar_source,
    get_event_sources,
    get_image_source,
    get_organizing_source,
)
from events_api.errors import SourceError, SourceUnavailable
from events_api.schemas import ErrorResponse, EventListResponse
from events_api.sources import EventSource, GoogleCalendarSource, TimeWindow, resolve_window

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {500: {"model": ErrorResponse, "description": "Upstream failure"}}


def request_window(
    time_min: Optional[str] = Query(None, alias="timeMin"),
    time_max: Optional[str] = Query(None, alias="timeMax"),
    settings: Settings = Depends(get_settings),
) -> TimeWindow:
    return resolve_window(
        time_min, time_max, default_days=settings.default_window_days
    )


def _failure(message: str, exc: Exception) -> JSONResponse:
    details = exc.message if isinstance(exc, SourceError) else str(exc)
    payload = ErrorResponse(error=message, details=details)
    return JSONResponse(status_code=500, content=payload.model_dump())


async def _source_events(
    source: EventSource, window: TimeWindow, settings: Settings, label: str
):
    logger.info(
        "%s events requested for %s .. %s", label, window.start_iso, window.end_iso
    )
    try:
        events = await collect(source, window, settings.source_timeout_seconds)
    except SourceError as exc:
        logger.error("Error fetching %s events: %s", label, exc.message)
        return _failure(f"Failed to fetch {label} events", exc)
    except Exception as exc:
        logger.exception("Unexpected error fetching %s events", label)
        return _failure(f"Failed to fetch {label} events", exc)
    return EventListResponse(items=events)


@router.get("/calendar-events", response_model=EventListResponse, responses=ERROR_RESPONSES)
@router.get("/google-calendar", response_model=EventListResponse, include_in_schema=False)
async def calendar_events(
    window: TimeWindow = Depends(request_window),
    source: EventSource = Depends(get_calendar_source),
    settings: Settings = Depends(get_settings),
):
    return await _source_events(source, window, settings, "Google Calendar")


@router.get("/organizing-events", response_model=EventListResponse, responses=ERROR_RESPONSES)
@router.get("/mobilize-events", response_model=EventListResponse, include_in_schema=False)
async def organizing_events(
    window: TimeWindow = Depends(request_window),
    source: EventSource = Depends(get_organizing_source),
    settings: Settings = Depends(get_settings),
):
    return await _source_events(source, window, settings, "Mobilize")


@router.get("/image-events", response_model=EventListResponse, responses=ERROR_RESPONSES)
async def image_events(
    window: TimeWindow = Depends(request_window),
    source: EventSource = Depends(get_image_source),
    settings: Settings = Depends(get_settings),
):
    return await _source_events(source, window, settings, "image")


@router.get("/all-events", response_model=EventListResponse, responses=ERROR_RESPONSES)
async def all_events(
    window: TimeWindow = Depends(request_window),
    sources: list[EventSource] = Depends(get_event_sources),
    settings: Settings = Depends(get_settings),
):
    """
    Merge every source into one list sorted by date. Source failures only
    shrink the result; a 500 means every source broke unexpectedly or the
    merge itself failed.
    """
    logger.info("Combined events requested for %s .. %s", window.start_iso, window.end_iso)
    try:
        events = await aggregate(sources, window, settings.source_timeout_seconds)
    except Exception as exc:
        logger.exception("Error fetching combined events")
        return _failure("Failed to fetch combined events", exc)
    return EventListResponse(items=events)


@router.get("/calendar", responses=ERROR_RESPONSES)
async def raw_calendar(
    window: TimeWindow = Depends(request_window),
    source: GoogleCalendarSource = Depends(get_calendar_source),
    settings: Settings = Depends(get_settings),
):
    """Native Google Calendar response for the calendar page."""
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(source.fetch_page, window),
            settings.source_timeout_seconds,
        )
    except SourceError as exc:
        logger.error("Error fetching calendar events: %s", exc.message)
        return _failure("Failed to fetch events", exc)
    except asyncio.TimeoutError:
        logger.error("Google Calendar did not respond in time")
        return _failure(
            "Failed to fetch events",
            SourceUnavailable("Google Calendar did not respond in time"),
        )
