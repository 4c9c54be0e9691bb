"""Sheet ingestion: tokenizing, header detection, column matching and row mapping."""

from .headers import HeaderOptions, HeaderResolution, resolve_header  # noqa: F401
from .loaders import (  # noqa: F401
    FileSheetFetcher,
    HttpSheetFetcher,
    SheetFetcher,
    build_export_url,
    extract_spreadsheet_id,
    load_sheet,
)
from .mapper import RowMapper  # noqa: F401
from .matcher import ColumnMatcher, FieldRule, normalize_header  # noqa: F401
from .tokenizer import tokenize_csv  # noqa: F401

__all__ = [
    "HeaderOptions",
    "HeaderResolution",
    "resolve_header",
    "FileSheetFetcher",
    "HttpSheetFetcher",
    "SheetFetcher",
    "build_export_url",
    "extract_spreadsheet_id",
    "load_sheet",
    "RowMapper",
    "ColumnMatcher",
    "FieldRule",
    "normalize_header",
    "tokenize_csv",
]
