"""
Flyer images uploaded by organizations, served as events on their date.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from sqlalchemy.exc import SQLAlchemyError

from events_api.db import DbClient, ImageRecord
from events_api.errors import SourceUnavailable
from events_api.sources.base import (
    EventSource,
    NormalizedEvent,
    SourceKind,
    TimeWindow,
    to_iso,
)

logger = logging.getLogger(__name__)


class ImageFlyerSource(EventSource):
    name = "image"
    kind = SourceKind.IMAGE

    def __init__(self, db: DbClient, *, sponsor_allowlist=None):
        super().__init__(sponsor_allowlist)
        self.db = db

    def _fetch(self, window: TimeWindow) -> Iterable[NormalizedEvent]:
        try:
            images = self.db.list_images(start=window.start, end=window.end)
        except SQLAlchemyError as exc:
            raise SourceUnavailable(f"Could not read images: {exc}") from exc
        logger.info("Loaded %d flyer images", len(images))
        return self._normalize(images)

    def _normalize(self, images: list[ImageRecord]) -> Iterator[NormalizedEvent]:
        for image in images:
            yield NormalizedEvent(
                id=f"{self.kind.value}:{image.id}",
                summary="",
                date=to_iso(image.date) if image.date else None,
                image=image.url,
                org=image.organization,
                url=image.url,
                event_type="flyer",
                source=self.kind,
            )
