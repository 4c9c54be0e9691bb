"""Thread-safe in-memory record store."""
from __future__ import annotations

import copy
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .base import Record, UpsertResult

LOGGER = logging.getLogger(__name__)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _identity(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


class InMemoryStore:
    """Dictionary-backed store with atomic upserts.

    Every upsert runs under a single lock so concurrent callers never observe
    a half-applied insert-or-update. String conflict keys match ignoring case
    and surrounding whitespace, like a unique index on ``lower(key)``; an
    update keeps the key as first stored.
    """

    def __init__(
        self,
        *,
        unique_keys: Optional[Mapping[str, Sequence[str]]] = None,
        clock: Callable[[], str] = _utcnow,
    ) -> None:
        self._tables: Dict[str, Dict[str, Record]] = {}
        self._unique_keys = {table: tuple(keys) for table, keys in (unique_keys or {}).items()}
        self._clock = clock
        self._lock = threading.Lock()

    def upsert(self, table: str, records: Sequence[Mapping[str, Any]], conflict_key: str) -> UpsertResult:
        result = UpsertResult()
        with self._lock:
            rows = self._tables.setdefault(table, {})
            staged: Dict[str, Record] = {}
            for record in records:
                key_value = record.get(conflict_key)
                if key_value in (None, ""):
                    return UpsertResult(error=f"'{conflict_key}' is required for upsert into {table}")

                existing = self._find({**rows, **staged}, conflict_key, key_value)
                now = self._clock()
                if existing is None:
                    stored = dict(record)
                    stored["id"] = str(uuid.uuid4())
                    stored["created_at"] = now
                    stored["updated_at"] = now
                    result.inserted += 1
                else:
                    stored = dict(existing)
                    stored.update(
                        {key: value for key, value in record.items() if key not in {"id", "created_at", conflict_key}}
                    )
                    stored["updated_at"] = now
                    result.updated += 1

                violation = self._check_unique(table, rows, stored)
                if violation:
                    return UpsertResult(error=violation)
                staged[stored["id"]] = stored

            rows.update(staged)
            LOGGER.debug("Upserted into %s: %s inserted, %s updated", table, result.inserted, result.updated)
            result.data = [copy.deepcopy(row) for row in staged.values()]
        return result

    def select(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> List[Record]:
        with self._lock:
            rows = list(self._tables.get(table, {}).values())
        matches = [row for row in rows if all(row.get(key) == value for key, value in (filters or {}).items())]
        return [copy.deepcopy(row) for row in matches]

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            return self._tables.get(table, {}).pop(record_id, None) is not None

    @staticmethod
    def _find(rows: Mapping[str, Record], key: str, value: Any) -> Optional[Record]:
        wanted = _identity(value)
        for row in rows.values():
            if _identity(row.get(key)) == wanted:
                return row
        return None

    def _check_unique(self, table: str, rows: Mapping[str, Record], stored: Record) -> Optional[str]:
        for column in self._unique_keys.get(table, ()):
            value = stored.get(column)
            if value in (None, ""):
                continue
            for row in rows.values():
                if row["id"] != stored["id"] and row.get(column) == value:
                    return f"duplicate key value violates unique constraint on {table}.{column}"
        return None


__all__ = ["InMemoryStore"]
