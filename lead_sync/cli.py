"""Command line interface for syncing sheets and inspecting their raw rows."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import SyncSettings, load_configuration, settings_from_config
from .errors import LeadSyncError
from .factory import build_fetcher, build_store
from .ingestion.exporters import export_raw_sheet, export_report_issues
from .ingestion.loaders import is_local_source
from .models import ENTITIES, SyncReport
from .orchestrator import SyncOrchestrator

LOGGER = logging.getLogger(__name__)


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Sync leads and salespersons from Google Sheets CSV exports into a record store",
    )
    parser.add_argument(
        "--config",
        help="Path to a configuration file (YAML or JSON)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Fetch a sheet and upsert its rows by email")
    sync_parser.add_argument("entity", choices=sorted(ENTITIES), help="Which records the sheet holds")
    _add_source_arguments(sync_parser)
    sync_parser.add_argument(
        "--store",
        help="Store to persist into: 'memory' (dry run), 'postgres', or a dotted class path. Overrides the config file",
    )
    sync_parser.add_argument(
        "--dsn",
        help="Database connection string for the postgres store",
    )
    sync_parser.add_argument(
        "--issues-out",
        help="Write rejected and failed rows to this CSV/XLSX file",
    )
    sync_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full sync report as JSON",
    )

    raw_parser = subparsers.add_parser("fetch-raw", help="Fetch a sheet and show its resolved header and rows")
    _add_source_arguments(raw_parser)
    raw_parser.add_argument(
        "--entity",
        choices=sorted(ENTITIES),
        default="leads",
        help="Entity whose header tokens are used to detect the header row",
    )
    raw_parser.add_argument(
        "--output",
        help="Write the rows to this CSV/XLSX/JSON file instead of printing them",
    )
    return parser


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "spreadsheet",
        nargs="?",
        help="Spreadsheet id, sheet URL or local CSV path (defaults to the configured spreadsheet)",
    )
    parser.add_argument("--sheet-id", help="Sheet tab gid (defaults to the configured one, or 0)")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        settings = settings_from_config(load_configuration(args.config) if args.config else None)
        if args.command == "sync":
            return _run_sync(args, settings)
        return _run_fetch_raw(args, settings)
    except LeadSyncError as exc:
        report = exc.report
        if report is not None:
            _print_report(report, as_json=getattr(args, "json", False))
            _write_issues(report, getattr(args, "issues_out", None))
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


def _orchestrator(args: argparse.Namespace, settings: SyncSettings, store_cfg: dict | None = None) -> SyncOrchestrator:
    source = args.spreadsheet or settings.spreadsheet_id or ""
    fetcher = build_fetcher(settings, local=is_local_source(source))
    store = build_store(store_cfg if store_cfg is not None else settings.store)
    return SyncOrchestrator(fetcher, store, settings)


def _run_sync(args: argparse.Namespace, settings: SyncSettings) -> int:
    store_cfg = dict(settings.store)
    if args.store:
        store_cfg = {"class": args.store, "options": {}}
    if args.dsn:
        store_cfg["options"] = {**dict(store_cfg.get("options") or {}), "dsn": args.dsn}
        store_cfg.setdefault("class", "postgres")

    orchestrator = _orchestrator(args, settings, store_cfg)
    report = orchestrator.sync(args.entity, args.spreadsheet, args.sheet_id)
    _print_report(report, as_json=args.json)
    _write_issues(report, args.issues_out)
    return 0 if report.ok else 1


def _run_fetch_raw(args: argparse.Namespace, settings: SyncSettings) -> int:
    orchestrator = _orchestrator(args, settings)
    sheet = orchestrator.fetch_raw(args.spreadsheet, args.sheet_id, entity=args.entity)
    if args.output:
        path = export_raw_sheet(sheet, args.output)
        LOGGER.info("Wrote %s rows to %s", len(sheet.rows), Path(path).resolve())
    else:
        payload = {
            "header": sheet.header,
            "header_row": sheet.header_row,
            "header_resolved": sheet.header_resolved,
            "rows": sheet.as_dicts(),
            "count": len(sheet.rows),
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def _print_report(report: SyncReport, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report.as_dict(), indent=2, ensure_ascii=False, default=str))
        return
    print(f"{report.entity}: {report.summary()}")
    for warning in report.warnings:
        print(f"  warning: {warning}")
    for rejection in report.rejections:
        print(f"  rejected: {rejection.reason}")
    if report.rejections_truncated:
        print(f"  ... {report.rejections_truncated} more rejected rows not shown")
    for failure in report.failures:
        print(f"  failed: {failure.message}")


def _write_issues(report: SyncReport, path: str | None) -> None:
    if not path:
        return
    destination = export_report_issues(report, path)
    LOGGER.info("Rejected and failed rows written to %s", Path(destination).resolve())


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
