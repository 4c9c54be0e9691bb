import pandas as pd

from lead_sync.ingestion.exporters import (
    export_raw_sheet,
    export_report_issues,
    raw_sheet_to_dataframe,
    report_issues_to_dataframe,
)
from lead_sync.models import RawSheet, RowFailure, RowRejection, SheetRow, SyncReport


def _build_sheet() -> RawSheet:
    header = ["Full Name", "Email", ""]
    return RawSheet(
        header=header,
        rows=[
            SheetRow.from_values(2, header, ["Ada Lovelace", "ada@example.com", "x"]),
            SheetRow.from_values(3, header, ["Grace Hopper"]),
        ],
        header_row=1,
    )


def _build_report() -> SyncReport:
    report = SyncReport(entity="leads", spreadsheet_id="abc", sheet_id="0")
    report.add_rejection(RowRejection(row_number=5, reason="row 5: missing email", missing=["email"]), limit=10)
    report.failures.append(RowFailure(row_number=3, email="a***@x.com", message="row 3: constraint"))
    return report


def test_raw_sheet_to_dataframe_names_blank_columns():
    dataframe = raw_sheet_to_dataframe(_build_sheet(), include_row_numbers=True)

    assert list(dataframe.columns) == ["_row", "Full Name", "Email", "column_3"]
    assert dataframe.loc[1, "Email"] == ""
    assert list(dataframe["_row"]) == [2, 3]


def test_report_issues_are_sorted_by_row():
    dataframe = report_issues_to_dataframe(_build_report())

    assert list(dataframe["row_number"]) == [3, 5]
    assert list(dataframe["kind"]) == ["failed", "rejected"]


def test_export_raw_sheet_to_csv_and_excel(tmp_path):
    csv_path = export_raw_sheet(_build_sheet(), tmp_path / "rows.csv")
    excel_path = export_raw_sheet(_build_sheet(), tmp_path / "rows.xlsx")

    csv_frame = pd.read_csv(csv_path)
    excel_frame = pd.read_excel(excel_path)

    assert csv_frame.loc[0, "Full Name"] == "Ada Lovelace"
    assert excel_frame.loc[1, "Full Name"] == "Grace Hopper"


def test_export_report_issues_to_csv(tmp_path):
    path = export_report_issues(_build_report(), tmp_path / "out" / "issues.csv")

    frame = pd.read_csv(path)

    assert frame.loc[1, "detail"] == "row 5: missing email"
