"""Typed errors raised by the journal services."""

from typing import Any


class JournalError(Exception):
    """Base class; `status_code` is used by the HTTP layer."""

    status_code = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(JournalError):
    """Malformed payload; raised before any mutation."""

    status_code = 422


class NotFound(JournalError):
    status_code = 404


class Unauthorized(JournalError):
    status_code = 401


class Conflict(JournalError):
    """Reserved for optimistic-concurrency checks."""

    status_code = 409


class Transient(JournalError):
    """Storage hiccup. Writes are idempotent by id, so retrying is safe."""

    status_code = 503
