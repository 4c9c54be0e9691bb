"""Utilities for fetching sheet exports and loading them into sheet rows."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional, Protocol, Union

import requests

from ..errors import FetchError
from ..models import RawSheet, SheetRow
from .headers import HeaderOptions, HeaderResolution, resolve_header
from .tokenizer import tokenize_rows

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

EXPORT_URL_TEMPLATE = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/export?format=csv&gid={sheet_id}"
DEFAULT_SHEET_ID = "0"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

_SPREADSHEET_URL = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")
_GID = re.compile(r"[#&?]gid=(\d+)")


class SheetFetcher(Protocol):
    """Anything that can return the CSV text of a sheet."""

    def fetch(self, spreadsheet_id: str, sheet_id: Optional[str] = None) -> str:  # pragma: no cover - protocol
        ...


def extract_spreadsheet_id(value: str) -> Optional[str]:
    """Return the spreadsheet id embedded in a Google Sheets URL, if any."""

    match = _SPREADSHEET_URL.search(value or "")
    return match.group(1) if match else None


def extract_sheet_id(value: str) -> Optional[str]:
    match = _GID.search(value or "")
    return match.group(1) if match else None


def normalize_identifier(value: str, sheet_id: Optional[str] = None) -> tuple[str, str]:
    """Accept either a bare spreadsheet id or a full sheet URL.

    Returns ``(spreadsheet_id, sheet_id)``; a ``gid`` in the URL is used when
    no explicit ``sheet_id`` is given.
    """

    text = (value or "").strip()
    if not text:
        raise ValueError("A spreadsheet identifier is required")
    spreadsheet_id = extract_spreadsheet_id(text) or text
    resolved_sheet = sheet_id or extract_sheet_id(text) or DEFAULT_SHEET_ID
    return spreadsheet_id, str(resolved_sheet)


def build_export_url(spreadsheet_id: str, sheet_id: Optional[str] = None, template: str = EXPORT_URL_TEMPLATE) -> str:
    return template.format(spreadsheet_id=spreadsheet_id, sheet_id=sheet_id or DEFAULT_SHEET_ID)


class HttpSheetFetcher:
    """Fetch CSV exports over HTTP with :mod:`requests`.

    ``timeout`` bounds the connect and each socket read, not the whole
    download; a server that keeps trickling bytes can hold a fetch open for
    longer than ``timeout`` seconds.
    """

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        url_template: str = EXPORT_URL_TEMPLATE,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout
        self._url_template = url_template
        self._user_agent = user_agent

    def fetch(self, spreadsheet_id: str, sheet_id: Optional[str] = None) -> str:
        url = build_export_url(spreadsheet_id, sheet_id, self._url_template)
        LOGGER.info("Fetching sheet export %s", url)
        try:
            response = self._session.get(url, timeout=self._timeout, headers={"User-Agent": self._user_agent})
        except requests.Timeout as exc:
            raise FetchError(f"Timed out after {self._timeout}s fetching {url}", url=url) from exc
        except requests.RequestException as exc:
            raise FetchError(f"Failed to fetch {url}: {exc}", url=url) from exc

        if not response.ok:
            raise FetchError(
                f"Failed to fetch sheet: HTTP {response.status_code} {response.reason or ''}".rstrip(),
                url=url,
                status_code=response.status_code,
            )

        content_type = response.headers.get("Content-Type", "")
        if "text/html" in content_type.lower():
            # Private sheets answer with a sign-in page instead of CSV.
            raise FetchError(
                "Sheet did not return CSV; check that it is shared or published",
                url=url,
                status_code=response.status_code,
            )

        if not response.encoding or response.encoding.lower() == "iso-8859-1":
            response.encoding = "utf-8"
        text = response.text
        LOGGER.debug("Fetched %s characters of CSV", len(text))
        return text


class FileSheetFetcher:
    """Read CSV exports from local files; the spreadsheet id is treated as a path."""

    def __init__(self, base_dir: Optional[PathLike] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else None

    def fetch(self, spreadsheet_id: str, sheet_id: Optional[str] = None) -> str:
        path = Path(spreadsheet_id)
        if self._base_dir is not None and not path.is_absolute():
            path = self._base_dir / path
        if path.suffix.lower() != ".csv":
            raise FetchError(f"Unsupported file extension: {path.suffix or '(none)'}", url=str(path))
        try:
            return path.read_text(encoding="utf-8-sig")
        except OSError as exc:
            raise FetchError(f"Failed to read {path}: {exc}", url=str(path)) from exc


def load_sheet(text: str, options: HeaderOptions = HeaderOptions()) -> tuple[RawSheet, HeaderResolution, int]:
    """Tokenize CSV text and resolve its header.

    Returns the sheet, the header resolution and the number of tokenized
    records. Rows are numbered as the spreadsheet shows them: blank lines
    count, line breaks inside quoted cells do not.
    """

    numbered = tokenize_rows(text)
    records = [fields for _, fields in numbered]
    resolution = resolve_header(records, options)
    rows = [
        SheetRow.from_values(numbered[index][0], resolution.header, values)
        for index, values in resolution.data_records(records)
    ]
    sheet = RawSheet(
        header=resolution.header,
        rows=rows,
        header_row=numbered[resolution.header_index][0] if numbered else 0,
        header_resolved=resolution.resolved,
        dropped_leading_column=resolution.dropped_leading_column,
    )
    return sheet, resolution, len(records)


def is_local_source(value: str) -> bool:
    return value.lower().endswith(".csv") and not value.lower().startswith(("http://", "https://"))


__all__ = [
    "SheetFetcher",
    "HttpSheetFetcher",
    "FileSheetFetcher",
    "build_export_url",
    "extract_spreadsheet_id",
    "extract_sheet_id",
    "normalize_identifier",
    "load_sheet",
    "is_local_source",
    "EXPORT_URL_TEMPLATE",
    "DEFAULT_SHEET_ID",
]
