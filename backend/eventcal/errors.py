# backend/eventcal/errors.py
"""Error taxonomy shared by the storage layer, the access layer and the API."""

from __future__ import annotations

from typing import Optional


class CalendarError(Exception):
    """Base class; `code` and `http_status` drive the API error envelope."""

    code = "internal_error"
    http_status = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AlreadyExists(CalendarError):
    """A unique constraint (e.g. the case-insensitive username) would be violated."""

    code = "already_exists"
    http_status = 409


class NotFound(CalendarError):
    code = "not_found"
    http_status = 404


class ValidationError(CalendarError):
    """Malformed input: bad date ordering, empty required field, partial coordinates..."""

    code = "validation_error"
    http_status = 422

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StorageError(CalendarError):
    """The underlying transaction or I/O failed. Safe for the caller to retry."""

    code = "storage_error"
    http_status = 503
    retryable = True
