"""
Error types shared by the event sources and the HTTP layer.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    SOURCE_UNAVAILABLE = "source_unavailable"
    CONFIGURATION_MISSING = "configuration_missing"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"


class SourceError(Exception):
    """Tagged error carrying the failure kind and any upstream HTTP status."""

    kind: ErrorKind = ErrorKind.SOURCE_UNAVAILABLE

    def __init__(
        self,
        message: str,
        *,
        upstream_status: Optional[int] = None,
        kind: Optional[ErrorKind] = None,
    ):
        super().__init__(message)
        self.message = message
        self.upstream_status = upstream_status
        if kind is not None:
            self.kind = kind

    @property
    def status_code(self) -> int:
        if self.kind == ErrorKind.VALIDATION:
            return 400
        if self.kind == ErrorKind.NOT_FOUND:
            return 404
        return 500

    def as_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "upstream_status": self.upstream_status,
            "message": self.message,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"upstream_status={self.upstream_status!r}, message={self.message!r})"
        )


class SourceUnavailable(SourceError):
    kind = ErrorKind.SOURCE_UNAVAILABLE


class ConfigurationMissing(SourceError):
    kind = ErrorKind.CONFIGURATION_MISSING


class ValidationError(SourceError):
    kind = ErrorKind.VALIDATION


class NotFound(SourceError):
    kind = ErrorKind.NOT_FOUND
