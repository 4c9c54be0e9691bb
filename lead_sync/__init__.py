"""Top-level package for syncing Google Sheets exports into CRM records."""

from . import models  # noqa: F401
from .errors import (  # noqa: F401
    ConfigurationError,
    EmptyInputError,
    FetchError,
    LeadSyncError,
    NoValidRowsError,
    PersistenceError,
)
from .models import (  # noqa: F401
    CanonicalField,
    ColumnBinding,
    LeadDraft,
    RawSheet,
    SalespersonDraft,
    SheetRow,
    SyncReport,
)
from .orchestrator import SyncOrchestrator  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "CanonicalField",
    "ColumnBinding",
    "LeadDraft",
    "RawSheet",
    "SalespersonDraft",
    "SheetRow",
    "SyncReport",
    "SyncOrchestrator",
    "LeadSyncError",
    "ConfigurationError",
    "FetchError",
    "EmptyInputError",
    "NoValidRowsError",
    "PersistenceError",
    "ingestion",
    "orchestrator",
    "store",
]
