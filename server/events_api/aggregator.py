"""
Concurrent fan-out over event sources and the merged, date-sorted result.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Sequence

from events_api.errors import SourceError, SourceUnavailable
from events_api.sources.base import (
    EPOCH,
    EventSource,
    NormalizedEvent,
    TimeWindow,
    parse_timestamp,
)

logger = logging.getLogger(__name__)


def _drain(source: EventSource, window: TimeWindow) -> list[NormalizedEvent]:
    return list(source.fetch(window))


async def collect(
    source: EventSource, window: TimeWindow, timeout: float
) -> list[NormalizedEvent]:
    """
    Run one source in a worker thread, bounded by ``timeout`` seconds.

    A timed-out call keeps running in its thread; its result is discarded.
    """
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(_drain, source, window), timeout
        )
    except asyncio.TimeoutError as exc:
        raise SourceUnavailable(
            f"{source.name} did not respond within {timeout:g}s"
        ) from exc


def event_sort_key(event: NormalizedEvent) -> datetime:
    """Events without a usable date sort as 1970-01-01T00:00:00Z."""
    return parse_timestamp(event.date) or EPOCH


def sort_events(events: list[NormalizedEvent]) -> list[NormalizedEvent]:
    # list.sort is stable, so ties keep the order sources emitted them in.
    return sorted(events, key=event_sort_key)


async def aggregate(
    sources: Sequence[EventSource], window: TimeWindow, timeout: float
) -> list[NormalizedEvent]:
    """
    Fetch every source concurrently and merge the results.

    A failing source contributes nothing and is logged; the others are kept.
    When every source fails with something other than a SourceError, the
    first of those errors is raised.
    """
    results = await asyncio.gather(
        *(collect(source, window, timeout) for source in sources),
        return_exceptions=True,
    )
    merged: list[NormalizedEvent] = []
    unexpected: list[BaseException] = []
    for source, result in zip(sources, results):
        if isinstance(result, BaseException):
            logger.error(
                "Dropping source %s from aggregate: %r",
                source.name,
                result,
                exc_info=None if isinstance(result, SourceError) else result,
            )
            if not isinstance(result, SourceError):
                unexpected.append(result)
            continue
        logger.info("Source %s returned %d events", source.name, len(result))
        merged.extend(result)
    if unexpected and len(unexpected) == len(results):
        raise unexpected[0]
    return sort_events(merged)
