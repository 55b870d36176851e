"""
Thin wrapper over requests that reports upstream failures as SourceUnavailable.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from events_api.errors import SourceUnavailable

logger = logging.getLogger(__name__)


def get_json(
    url: str,
    *,
    params: Any = None,
    timeout: float = 10.0,
    source: str = "upstream",
) -> dict:
    try:
        response = requests.get(url, params=params, timeout=timeout)
        response.raise_for_status()
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else None
        detail = _error_text(exc.response) or str(exc)
        logger.error("%s responded with HTTP %s: %s", source, status, detail)
        raise SourceUnavailable(
            f"{source} responded with HTTP {status}: {detail}",
            upstream_status=status,
        ) from exc
    except requests.RequestException as exc:
        logger.error("No response from %s: %s", source, exc)
        raise SourceUnavailable(f"No response from {source}: {exc}") from exc

    try:
        payload = response.json()
    except ValueError as exc:
        raise SourceUnavailable(
            f"{source} returned invalid JSON",
            upstream_status=response.status_code,
        ) from exc
    if not isinstance(payload, dict):
        raise SourceUnavailable(
            f"{source} returned an unexpected payload",
            upstream_status=response.status_code,
        )
    return payload


def _error_text(response: Optional[requests.Response]) -> str:
    if response is None:
        return ""
    try:
        body = response.json()
    except ValueError:
        return (response.text or "")[:500]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or error)
        if error:
            return str(error)
    return str(body)[:500]
