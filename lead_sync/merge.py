"""Helpers for collapsing drafts that share a natural key within one sheet."""
from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from .models import Draft


def normalise_email(value: str) -> str:
    return (value or "").strip().lower()


def dedupe_drafts(drafts: Iterable[Tuple[int, Draft]]) -> Tuple[List[Tuple[int, Draft]], List[int]]:
    """Keep one draft per email, the last occurrence winning.

    Returns the surviving ``(row_number, draft)`` pairs in order of first
    appearance, and the row numbers that were superseded. The normalised
    email is only the grouping key; drafts keep the address as written.
    """

    latest: Dict[str, Tuple[int, Draft]] = {}
    ordered_keys: List[str] = []
    superseded: List[int] = []

    for row_number, draft in drafts:
        key = normalise_email(draft.email)
        if key not in latest:
            ordered_keys.append(key)
        else:
            superseded.append(latest[key][0])
        latest[key] = (row_number, draft)

    return [latest[key] for key in ordered_keys], superseded


__all__ = ["dedupe_drafts", "normalise_email"]
