"""
Data access errors.

Every error carries a stable machine-readable ``kind`` plus a human-readable
message, so HTTP handlers and background tasks can report them the same way.
"""

from typing import Any, Optional


class DataAccessError(Exception):
    """Base class for all façade and storage errors."""

    kind = "data_access"
    status_code = 500

    def __init__(self, message: str, *, detail: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to the standard error response shape."""
        payload = {
            "success": False,
            "error": self.kind,
            "detail": self.message,
        }
        if self.detail:
            payload["context"] = self.detail
        return payload


class ValidationError(DataAccessError):
    """Missing or invalid input. User-correctable."""
    kind = "validation"
    status_code = 400


class NotFoundError(DataAccessError):
    """Referenced id is absent from its collection."""
    kind = "not_found"
    status_code = 404


class DuplicateConflictError(DataAccessError):
    """Uniqueness violation inside a collection."""
    kind = "duplicate_conflict"
    status_code = 409


class PersistenceError(DataAccessError):
    """Both the remote and the local backend failed."""
    kind = "persistence"
    status_code = 503


class StaleReportError(DataAccessError):
    """A migration report is too old to act on."""
    kind = "stale_report"
    status_code = 409
