"""Record stores the orchestrator can persist drafts into."""

from .base import Record, RecordStore, UpsertResult  # noqa: F401
from .memory import InMemoryStore  # noqa: F401

__all__ = ["Record", "RecordStore", "UpsertResult", "InMemoryStore"]
