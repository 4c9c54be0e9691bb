"""Exception hierarchy for the sheet sync pipeline."""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .models import SyncReport


class LeadSyncError(RuntimeError):
    """Base class for errors surfaced to sync callers."""

    kind = "error"

    def __init__(self, message: str, *, report: Optional["SyncReport"] = None) -> None:
        super().__init__(message)
        self.report = report


class ConfigurationError(LeadSyncError):
    """Raised when configuration files are missing or malformed."""

    kind = "configuration"


class FetchError(LeadSyncError):
    """Raised when the sheet text could not be retrieved."""

    kind = "fetch"

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        report: Optional["SyncReport"] = None,
    ) -> None:
        super().__init__(message, report=report)
        self.url = url
        self.status_code = status_code


class EmptyInputError(LeadSyncError):
    """Raised when a sheet yields nothing that can be synced."""

    kind = "empty"

    def __init__(self, message: str, *, reason: str = "empty", report: Optional["SyncReport"] = None) -> None:
        super().__init__(message, report=report)
        self.reason = reason


class NoValidRowsError(EmptyInputError):
    """Raised when data rows exist but none passed validation."""

    kind = "no_valid_rows"


class PersistenceError(LeadSyncError):
    """Raised when the record store rejects a write."""

    kind = "persistence"

    def __init__(self, message: str, *, row_number: Optional[int] = None, email: str = "") -> None:
        super().__init__(message)
        self.row_number = row_number
        self.email = redact_email(email)


def redact_email(email: str) -> str:
    """Mask the local part of an address, keeping its first character and the domain."""

    email = (email or "").strip()
    if not email:
        return ""
    local, sep, domain = email.partition("@")
    if not sep:
        return f"{email[:1]}***"
    return f"{local[:1]}***@{domain}"


__all__ = [
    "LeadSyncError",
    "ConfigurationError",
    "FetchError",
    "EmptyInputError",
    "NoValidRowsError",
    "PersistenceError",
    "redact_email",
]
