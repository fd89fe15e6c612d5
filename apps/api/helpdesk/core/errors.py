"""Domain exceptions shared by the store, services, and routers.

Every exception carries a `code` tag so callers can report a discriminated
failure (`{"error": code, "detail": message}`) without matching on types.
"""


class HelpdeskError(Exception):
    """Base exception for helpdesk domain errors."""

    code = "Error"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(HelpdeskError):
    """Malformed input: unknown enum value, missing or out-of-range field."""

    code = "ValidationError"
    status_code = 422


class PermissionDeniedError(HelpdeskError):
    """Actor's role does not grant the requested action."""

    code = "Forbidden"
    status_code = 403


class NotFoundError(HelpdeskError):
    """Referenced ticket or user does not exist."""

    code = "NotFound"
    status_code = 404


class ConflictError(HelpdeskError):
    """Write rejected because the current row state does not allow it."""

    code = "Conflict"
    status_code = 409


class StoreError(HelpdeskError):
    """Atomic write failed; none of its statements were applied."""

    code = "StoreError"
    status_code = 500


class CacheError(Exception):
    """Cache backend failure. Never escapes the cache layer."""


class QueueError(Exception):
    """Task queue backend failure. Callers on the write path log and continue."""
