"""Export utilities for fetched sheets and sync reports."""
from __future__ import annotations

from pathlib import Path
from typing import List, MutableMapping, Optional, Union

import pandas as pd

from ..models import RawSheet, SyncReport

PathLike = Union[str, Path]

ISSUE_COLUMNS = ["row_number", "kind", "detail"]


def raw_sheet_to_dataframe(sheet: RawSheet, *, include_row_numbers: bool = False) -> pd.DataFrame:
    """Convert a fetched sheet into a :class:`pandas.DataFrame` of strings.

    Columns follow the resolved header; blank or repeated header cells get
    positional names so no value is lost.
    """

    columns = _unique_columns(sheet.header)
    records = [[row.value_at(index) for index in range(len(columns))] for row in sheet.rows]
    dataframe = pd.DataFrame(records, columns=columns, dtype="string")
    if include_row_numbers:
        dataframe.insert(0, "_row", [row.number for row in sheet.rows])
    return dataframe


def report_issues_to_dataframe(report: SyncReport) -> pd.DataFrame:
    """Flatten a report's rejections and persistence failures into one table."""

    rows: List[MutableMapping[str, object]] = [
        {"row_number": rejection.row_number, "kind": "rejected", "detail": rejection.reason}
        for rejection in report.rejections
    ]
    rows.extend(
        {"row_number": failure.row_number, "kind": "failed", "detail": failure.message}
        for failure in report.failures
    )
    dataframe = pd.DataFrame(rows, columns=ISSUE_COLUMNS)
    return dataframe.sort_values("row_number", kind="stable").reset_index(drop=True)


def export_raw_sheet(
    sheet: RawSheet,
    path: PathLike,
    *,
    sheet_name: str = "Rows",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write a fetched sheet to a CSV or Excel file."""

    output_path = Path(path)
    _write_dataframe(raw_sheet_to_dataframe(sheet), output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def export_report_issues(
    report: SyncReport,
    path: PathLike,
    *,
    sheet_name: str = "Issues",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write the rejected and failed rows of a sync report to a CSV or Excel file."""

    output_path = Path(path)
    _write_dataframe(report_issues_to_dataframe(report), output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def _unique_columns(header: List[str]) -> List[str]:
    columns: List[str] = []
    for index, name in enumerate(header):
        label = name.strip() or f"column_{index + 1}"
        if label in columns:
            label = f"{label}_{index + 1}"
        columns.append(label)
    return columns


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()
    path.parent.mkdir(parents=True, exist_ok=True)

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in {".xlsx", ".xlsm"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    if suffix == ".json":
        dataframe.to_json(path, orient="records", force_ascii=False, **exporter_kwargs)
        return

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = [
    "export_raw_sheet",
    "export_report_issues",
    "raw_sheet_to_dataframe",
    "report_issues_to_dataframe",
]
