"""Record store protocol used by the sync orchestrator."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

Record = Dict[str, Any]


@dataclass
class UpsertResult:
    """Outcome of an upsert call: persisted rows on success, a message on failure."""

    data: List[Record] = field(default_factory=list)
    error: Optional[str] = None
    inserted: int = 0
    updated: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class RecordStore(Protocol):
    """Minimal persistence interface: upsert by unique key, filtered select, delete by id."""

    def upsert(self, table: str, records: Sequence[Mapping[str, Any]], conflict_key: str) -> UpsertResult:  # pragma: no cover - protocol
        ...

    def select(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> List[Record]:  # pragma: no cover - protocol
        ...

    def delete(self, table: str, record_id: str) -> bool:  # pragma: no cover - protocol
        ...


__all__ = ["Record", "RecordStore", "UpsertResult"]
