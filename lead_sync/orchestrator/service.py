"""Sync orchestrator that drives a sheet through the ingestion pipeline into a store."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..config import SyncSettings
from ..errors import EmptyInputError, FetchError, NoValidRowsError, PersistenceError
from ..ingestion.loaders import SheetFetcher, load_sheet, normalize_identifier
from ..ingestion.mapper import RowMapper
from ..merge import dedupe_drafts
from ..models import Draft, EntitySchema, RawSheet, RowFailure, RowRejection, SyncReport, get_entity
from ..store import RecordStore

LOGGER = logging.getLogger(__name__)


class SyncOrchestrator:
    """Fetch a sheet, map its rows onto an entity and upsert them by email."""

    def __init__(
        self,
        fetcher: SheetFetcher,
        store: RecordStore,
        settings: Optional[SyncSettings] = None,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._settings = settings or SyncSettings()

    @property
    def settings(self) -> SyncSettings:
        return self._settings

    def fetch_raw(self, spreadsheet_id: Optional[str] = None, sheet_id: Optional[str] = None, *, entity: str = "leads") -> RawSheet:
        """Fetch and parse a sheet without mapping or persisting anything."""

        spreadsheet_id, sheet_id = self._identify(spreadsheet_id, sheet_id, entity)
        text = self._fetcher.fetch(spreadsheet_id, sheet_id)
        sheet, _, _ = load_sheet(text, self._settings.header_options(entity))
        LOGGER.info("Fetched %s data rows from %s (gid %s)", len(sheet.rows), spreadsheet_id, sheet_id)
        return sheet

    def sync(self, entity: str, spreadsheet_id: Optional[str] = None, sheet_id: Optional[str] = None) -> SyncReport:
        """Run one sync of ``entity`` from the given sheet.

        Raises :class:`FetchError` when the sheet cannot be retrieved,
        :class:`EmptyInputError` when it holds no data rows and
        :class:`NoValidRowsError` when no row passes validation. Row
        rejections and per-row persistence failures are recorded on the
        returned report instead.
        """

        schema = get_entity(entity)
        spreadsheet_id, sheet_id = self._identify(spreadsheet_id, sheet_id, schema.name)
        report = SyncReport(entity=schema.name, spreadsheet_id=spreadsheet_id, sheet_id=sheet_id)

        try:
            text = self._fetcher.fetch(spreadsheet_id, sheet_id)
        except FetchError as exc:
            self._fail(report, exc)
            exc.report = report
            raise

        drafts = self._map_rows(schema, text, report)
        self._persist(schema, drafts, report)
        LOGGER.info("Sync of %s from %s: %s", schema.name, spreadsheet_id, report.summary())
        return report

    def _identify(self, spreadsheet_id: Optional[str], sheet_id: Optional[str], entity: str) -> Tuple[str, str]:
        value = spreadsheet_id or self._settings.spreadsheet_id
        if not value:
            raise ValueError("No spreadsheet identifier given and none configured")
        return normalize_identifier(value, sheet_id or self._settings.entity(entity).sheet_id)

    def _map_rows(self, schema: EntitySchema, text: str, report: SyncReport) -> List[Tuple[int, Draft]]:
        entity_settings = self._settings.entity(schema.name)
        sheet, resolution, _ = load_sheet(text, self._settings.header_options(schema.name))
        report.header_row = sheet.header_row if sheet.header else None
        report.header_resolved = resolution.resolved
        report.warnings.extend(resolution.warnings)

        binding = self._settings.matcher(schema.name).match(sheet.header)
        report.bindings = binding.headers()
        mapper = RowMapper(
            schema,
            binding,
            phone_required=entity_settings.phone_required,
            defaults=entity_settings.defaults,
        )
        unbound = [canonical.value for canonical in mapper.missing_bindings()]
        if unbound:
            report.warnings.append(f"no column found for required field(s): {', '.join(unbound)}")

        limit = self._settings.max_reported_rejections
        drafts: List[Tuple[int, Draft]] = []
        for row in sheet.rows:
            if row.is_blank():
                report.rows_skipped_blank += 1
                continue
            report.rows_tokenized += 1
            outcome = mapper.map(row)
            if isinstance(outcome, RowRejection):
                report.add_rejection(outcome, limit)
            else:
                drafts.append((row.number, outcome))

        if report.rows_tokenized == 0:
            error = EmptyInputError(
                "Sheet has no data rows" if sheet.header else "Sheet is empty",
                reason="empty",
                report=report,
            )
            self._fail(report, error)
            raise error

        drafts, superseded = dedupe_drafts(drafts)
        report.duplicate_emails = len(superseded)
        if superseded:
            report.warnings.append(
                f"{len(superseded)} row(s) repeat an earlier email; the last occurrence was kept"
            )
        report.rows_valid = len(drafts)

        if not drafts:
            if not resolution.resolved:
                reason = "header_unresolved"
                message = f"No valid rows: header row could not be found (bound columns: {report.bindings or 'none'})"
            elif unbound:
                reason = "missing_columns"
                message = f"No valid rows: no column found for {', '.join(unbound)}"
            else:
                reason = "validation"
                message = f"No valid rows: all {report.rows_tokenized} data rows failed validation"
            error = NoValidRowsError(message, reason=reason, report=report)
            self._fail(report, error)
            raise error

        return drafts

    def _persist(self, schema: EntitySchema, drafts: List[Tuple[int, Draft]], report: SyncReport) -> None:
        for row_number, draft in drafts:
            # One upsert per draft keeps a bad record from failing the whole batch.
            result = self._store.upsert(schema.table, [draft.as_record()], schema.conflict_key)
            if not result.ok:
                failure = PersistenceError(
                    f"row {row_number}: {result.error}", row_number=row_number, email=draft.email
                )
                LOGGER.warning("Failed to persist %s row %s <%s>: %s", schema.name, row_number, failure.email, result.error)
                report.failures.append(RowFailure(row_number=row_number, email=failure.email, message=str(failure)))
                continue
            report.rows_synced += 1
            report.rows_inserted += result.inserted
            report.rows_updated += result.updated

        if report.failures:
            report.warnings.append(
                f"{len(report.failures)} of {report.rows_valid} valid rows could not be persisted"
            )

    @staticmethod
    def _fail(report: SyncReport, error: Exception) -> None:
        report.error = str(error)
        report.error_kind = getattr(error, "reason", None) or getattr(error, "kind", "error")
        LOGGER.error("Sync of %s failed: %s", report.entity, report.error)


__all__ = ["SyncOrchestrator"]
