"""Data models shared by the ingestion pipeline, the orchestrator and the CLI."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Type, Union


# --- Canonical fields ---

class CanonicalField(str, Enum):
    """Semantic slots that sheet columns are mapped onto.

    The value of each member is the column name used by the record store.
    """

    NAME = "name"
    EMAIL = "email"
    PHONE = "phone"
    COMPANY = "company"
    STATUS = "status"
    ASSIGNED_TO = "assigned_to"
    NOTE1 = "note1"
    NOTE2 = "note2"
    STREET_ADDRESS = "street_address"
    POST_CODE = "post_code"
    LEAD_STATUS = "lead_status"
    ELECTRICITY_BILL = "electricity_bill"
    DEPARTMENT = "department"
    REGION = "region"

    @classmethod
    def parse(cls, value: Union[str, "CanonicalField"]) -> "CanonicalField":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown canonical field '{value}'") from None


# --- Sheet level models ---

@dataclass(slots=True)
class SheetRow:
    """One data record of a sheet, paired with the header it was read under."""

    number: int
    cells: List[Tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_values(cls, number: int, headers: Sequence[str], values: Sequence[str]) -> "SheetRow":
        cells = [(header, values[index] if index < len(values) else "") for index, header in enumerate(headers)]
        return cls(number=number, cells=cells)

    def value_at(self, index: int) -> str:
        if 0 <= index < len(self.cells):
            return self.cells[index][1]
        return ""

    def mapping(self) -> Dict[str, str]:
        """Return a header → value view; later duplicate headers do not overwrite earlier ones."""
        view: Dict[str, str] = {}
        for header, value in self.cells:
            if header and header not in view:
                view[header] = value
        return view

    def is_blank(self) -> bool:
        return not any(value.strip() for _, value in self.cells)


@dataclass(frozen=True, slots=True)
class BoundColumn:
    index: int
    header: str


@dataclass
class ColumnBinding:
    """Resolved mapping from canonical fields to the sheet's header columns."""

    columns: Dict[CanonicalField, BoundColumn] = field(default_factory=dict)

    def bind(self, canonical: CanonicalField, column: BoundColumn) -> None:
        if canonical in self.columns:
            raise ValueError(f"{canonical.value} is already bound to '{self.columns[canonical].header}'")
        self.columns[canonical] = column

    def get(self, canonical: CanonicalField) -> Optional[BoundColumn]:
        return self.columns.get(canonical)

    def __contains__(self, canonical: object) -> bool:
        return canonical in self.columns

    def __iter__(self) -> Iterator[CanonicalField]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    def headers(self) -> Dict[str, str]:
        return {canonical.value: column.header for canonical, column in self.columns.items()}


# --- Entity drafts ---

@dataclass(slots=True)
class LeadDraft:
    """Canonical lead assembled from one sheet row."""

    name: str
    email: str
    phone: str = ""
    company: str = "N/A"
    status: str = "Not lifted"
    assigned_to: str = "Unassigned"
    note1: str = ""
    note2: str = ""
    street_address: str = ""
    post_code: str = ""
    lead_status: str = ""
    electricity_bill: str = ""
    source: str = "google_sheet"

    def as_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class SalespersonDraft:
    """Canonical salesperson assembled from one sheet row."""

    name: str
    email: str
    phone: str = ""
    department: str = ""
    region: str = ""

    def as_record(self) -> Dict[str, Any]:
        return asdict(self)


Draft = Union[LeadDraft, SalespersonDraft]


@dataclass(frozen=True)
class EntitySchema:
    """Describes one syncable entity: its table, fields and draft type."""

    name: str
    table: str
    fields: Tuple[CanonicalField, ...]
    draft_type: Type[Any]
    conflict_key: str = "email"

    def field_defaults(self) -> Dict[CanonicalField, str]:
        template = self.draft_type(name="", email="")
        return {canonical: getattr(template, canonical.value) for canonical in self.fields}


LEADS = EntitySchema(
    name="leads",
    table="leads",
    fields=(
        CanonicalField.NAME,
        CanonicalField.EMAIL,
        CanonicalField.PHONE,
        CanonicalField.COMPANY,
        CanonicalField.STATUS,
        CanonicalField.ASSIGNED_TO,
        CanonicalField.NOTE1,
        CanonicalField.NOTE2,
        CanonicalField.STREET_ADDRESS,
        CanonicalField.POST_CODE,
        CanonicalField.LEAD_STATUS,
        CanonicalField.ELECTRICITY_BILL,
    ),
    draft_type=LeadDraft,
)

SALESPERSONS = EntitySchema(
    name="salespersons",
    table="salespersons",
    fields=(
        CanonicalField.NAME,
        CanonicalField.EMAIL,
        CanonicalField.PHONE,
        CanonicalField.DEPARTMENT,
        CanonicalField.REGION,
    ),
    draft_type=SalespersonDraft,
)

ENTITIES: Mapping[str, EntitySchema] = {LEADS.name: LEADS, SALESPERSONS.name: SALESPERSONS}


def get_entity(name: str) -> EntitySchema:
    try:
        return ENTITIES[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown entity '{name}'. Expected one of: {sorted(ENTITIES)}") from None


# --- Reporting ---

@dataclass(slots=True)
class RowRejection:
    """A data row that did not produce a draft."""

    row_number: int
    reason: str
    missing: List[str] = field(default_factory=list)


@dataclass(slots=True)
class RowFailure:
    """A valid draft that the store refused to persist."""

    row_number: int
    email: str
    message: str


@dataclass
class RawSheet:
    """Header and data rows of a fetched sheet, before any entity mapping."""

    header: List[str]
    rows: List[SheetRow] = field(default_factory=list)
    header_row: int = 0
    header_resolved: bool = True
    dropped_leading_column: bool = False

    def as_dicts(self) -> List[Dict[str, str]]:
        return [row.mapping() for row in self.rows]


@dataclass
class SyncReport:
    """Outcome of one sync invocation."""

    entity: str
    spreadsheet_id: str
    sheet_id: str
    rows_tokenized: int = 0
    rows_valid: int = 0
    rows_synced: int = 0
    rows_inserted: int = 0
    rows_updated: int = 0
    rows_skipped_blank: int = 0
    rows_rejected: int = 0
    duplicate_emails: int = 0
    rejections: List[RowRejection] = field(default_factory=list)
    failures: List[RowFailure] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    header_row: Optional[int] = None
    header_resolved: bool = True
    bindings: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failures

    @property
    def rejections_truncated(self) -> int:
        return max(self.rows_rejected - len(self.rejections), 0)

    def add_rejection(self, rejection: RowRejection, limit: int) -> None:
        self.rows_rejected += 1
        if len(self.rejections) < limit:
            self.rejections.append(rejection)

    def summary(self) -> str:
        text = (
            f"synced {self.rows_synced} of {self.rows_valid} valid rows "
            f"({self.rows_tokenized} read), {self.rows_rejected} rejected"
        )
        if self.failures:
            text += f", {len(self.failures)} failed to persist"
        if self.error:
            text += f" - {self.error}"
        return text

    def as_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["rejections_truncated"] = self.rejections_truncated
        payload["summary"] = self.summary()
        return payload


__all__ = [
    "CanonicalField",
    "SheetRow",
    "BoundColumn",
    "ColumnBinding",
    "LeadDraft",
    "SalespersonDraft",
    "Draft",
    "EntitySchema",
    "LEADS",
    "SALESPERSONS",
    "ENTITIES",
    "get_entity",
    "RowRejection",
    "RowFailure",
    "RawSheet",
    "SyncReport",
]
