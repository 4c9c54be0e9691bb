"""Header row detection for sheets whose first record may not be the header."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

LOGGER = logging.getLogger(__name__)

DEFAULT_DATA_PREFIXES: Tuple[str, ...] = ("_", "what_", "to_", "solar", "electricity", "bill")
DEFAULT_HEADER_TOKENS: Tuple[Tuple[str, ...], ...] = (("email",), ("phone",), ("name", "full"))

_NUMERIC = re.compile(r"^\d+(?:[.,]\d+)?$")


@dataclass(frozen=True)
class HeaderOptions:
    """Tunables for header detection."""

    scan_limit: int = 50
    leading_column_max_length: int = 50
    data_prefixes: Tuple[str, ...] = DEFAULT_DATA_PREFIXES
    # Every group must be present; any token of a group satisfies it.
    required_tokens: Tuple[Tuple[str, ...], ...] = DEFAULT_HEADER_TOKENS


@dataclass
class HeaderResolution:
    """The chosen header and where data starts in the tokenized records."""

    header: List[str]
    header_index: int
    data_start: int
    resolved: bool = True
    dropped_leading_column: bool = False
    warnings: List[str] = field(default_factory=list)

    def data_records(self, records: Sequence[Sequence[str]]) -> List[Tuple[int, List[str]]]:
        """Return ``(record_index, values)`` for every data record, aligned to :attr:`header`."""

        rows: List[Tuple[int, List[str]]] = []
        for index in range(self.data_start, len(records)):
            values = list(records[index])
            if self.dropped_leading_column:
                values = values[1:]
            rows.append((index, values))
        return rows


def looks_like_data(fields: Sequence[str], options: HeaderOptions = HeaderOptions()) -> bool:
    """Return ``True`` when a record's fields read like answers rather than column titles."""

    for value in fields:
        text = value.strip().lower()
        if not text:
            continue
        if "?" in text or _NUMERIC.match(text):
            return True
        if any(text.startswith(prefix) for prefix in options.data_prefixes):
            return True
    return False


def has_header_tokens(fields: Sequence[str], options: HeaderOptions = HeaderOptions()) -> bool:
    joined = "|".join(value.lower() for value in fields)
    return all(any(token in joined for token in group) for group in options.required_tokens)


def looks_like_header(fields: Sequence[str], options: HeaderOptions = HeaderOptions()) -> bool:
    """Weaker check than :func:`has_header_tokens`: several titles, at least one token group."""

    values = [value.strip().lower() for value in fields if value.strip()]
    if len(values) < 2:
        return False
    joined = "|".join(values)
    return any(any(token in joined for token in group) for group in options.required_tokens)


def is_malformed_leading_column(header: Sequence[str], options: HeaderOptions = HeaderOptions()) -> bool:
    if not header:
        return False
    first = header[0]
    return len(first) > options.leading_column_max_length or "?" in first


def resolve_header(records: Sequence[Sequence[str]], options: HeaderOptions = HeaderOptions()) -> HeaderResolution:
    """Pick the header record from tokenized CSV records.

    Record 0 is the header unless it looks like data, or it neither carries
    every required token group nor passes :func:`looks_like_header`. Then
    the first record within ``options.scan_limit`` carrying all required
    tokens wins. When none does, record 0 is used anyway; if it looked like
    data the resolution is marked as unresolved so the caller can report a
    degraded binding.
    """

    if not records:
        return HeaderResolution(header=[], header_index=0, data_start=0, resolved=False,
                                warnings=["sheet has no records"])

    header_index = 0
    resolved = True
    warnings: List[str] = []

    first_is_data = looks_like_data(records[0], options)
    lacks_header = not has_header_tokens(records[0], options) and not looks_like_header(records[0], options)
    if first_is_data or lacks_header:
        LOGGER.debug("First record may not be the header, scanning: %s", list(records[0]))
        for index in range(min(options.scan_limit, len(records))):
            if has_header_tokens(records[index], options):
                header_index = index
                LOGGER.debug("Found header row at record %s: %s", index, list(records[index]))
                break
        else:
            # A record that reads like column titles is still a usable header.
            resolved = not first_is_data
            message = (
                f"no header row with {_describe_tokens(options)} found in the first "
                f"{options.scan_limit} records; using record 0"
            )
            warnings.append(message)
            LOGGER.log(logging.INFO if resolved else logging.WARNING, "Header detection: %s", message)

    header = [value.strip() for value in records[header_index]]
    dropped = False
    if is_malformed_leading_column(header, options):
        LOGGER.debug("Dropping malformed leading column %r", header[0][:80])
        header = header[1:]
        dropped = True

    return HeaderResolution(
        header=header,
        header_index=header_index,
        data_start=header_index + 1,
        resolved=resolved,
        dropped_leading_column=dropped,
        warnings=warnings,
    )


def _describe_tokens(options: HeaderOptions) -> str:
    return ", ".join("/".join(group) for group in options.required_tokens)


__all__ = [
    "HeaderOptions",
    "HeaderResolution",
    "resolve_header",
    "looks_like_data",
    "has_header_tokens",
    "looks_like_header",
    "is_malformed_leading_column",
    "DEFAULT_DATA_PREFIXES",
    "DEFAULT_HEADER_TOKENS",
]
