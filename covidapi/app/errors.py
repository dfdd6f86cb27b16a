"""
Error taxonomy for the snapshot API.

Each error carries the HTTP status it maps to; main.py registers one handler
that renders every SnapshotError as ``{"error": detail}``.
"""
from __future__ import annotations

from typing import Any

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_INTERNAL_ERROR = 500


class SnapshotError(Exception):
    status_code: int = STATUS_INTERNAL_ERROR

    def __init__(self, detail: Any):
        super().__init__(detail if isinstance(detail, str) else repr(detail))
        self.detail = detail


class ValidationError(SnapshotError):
    """Write payload does not match the snapshot schema."""

    status_code = STATUS_BAD_REQUEST


class DateParseError(SnapshotError):
    """Requested ``date`` could not be parsed as an instant."""

    status_code = STATUS_BAD_REQUEST

    def __init__(self, value: str):
        super().__init__(f"Invalid input: {value}")
        self.value = value


class SnapshotNotFoundError(SnapshotError):
    status_code = STATUS_NOT_FOUND

    def __init__(self, iso: str):
        super().__init__(f"No data found for {iso}")
        self.iso = iso


class UpstreamError(SnapshotError):
    """Warehouse query/insert failure, or the source site could not be scraped."""

    status_code = STATUS_INTERNAL_ERROR


class IntegrityError(SnapshotError):
    """Stored rows for one instant do not form a valid snapshot."""

    status_code = STATUS_INTERNAL_ERROR
