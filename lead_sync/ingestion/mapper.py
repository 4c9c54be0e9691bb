"""Turn sheet rows into validated entity drafts."""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Union

from ..errors import redact_email
from ..models import CanonicalField, ColumnBinding, Draft, EntitySchema, RowRejection, SheetRow

LOGGER = logging.getLogger(__name__)

_WRAPPING_QUOTES = "\"'"

REQUIRED_FIELDS = (CanonicalField.NAME, CanonicalField.EMAIL)


def clean_value(value: Optional[str]) -> str:
    """Trim a raw cell and strip one pair of wrapping quote characters."""

    if value is None:
        return ""
    text = str(value).strip()
    if text[:1] and text[0] in _WRAPPING_QUOTES:
        text = text[1:]
    if text[-1:] and text[-1] in _WRAPPING_QUOTES:
        text = text[:-1]
    return text.strip()


class RowMapper:
    """Apply a :class:`ColumnBinding` to sheet rows for one entity."""

    def __init__(
        self,
        schema: EntitySchema,
        binding: ColumnBinding,
        *,
        phone_required: bool = False,
        defaults: Optional[Mapping[CanonicalField, str]] = None,
    ) -> None:
        self._schema = schema
        self._binding = binding
        self._defaults: Dict[CanonicalField, str] = schema.field_defaults()
        self._defaults.update(defaults or {})
        self._required = REQUIRED_FIELDS + ((CanonicalField.PHONE,) if phone_required else ())

    @property
    def required_fields(self) -> List[CanonicalField]:
        return list(self._required)

    def missing_bindings(self) -> List[CanonicalField]:
        """Required fields that no header column was bound to."""

        return [canonical for canonical in self._required if canonical not in self._binding]

    def raw_values(self, row: SheetRow) -> Dict[CanonicalField, str]:
        """Cleaned cell values for every bound field, before defaults."""

        values: Dict[CanonicalField, str] = {}
        for canonical in self._schema.fields:
            column = self._binding.get(canonical)
            values[canonical] = clean_value(row.value_at(column.index)) if column is not None else ""
        return values

    def extract(self, row: SheetRow) -> Dict[CanonicalField, str]:
        return self._with_defaults(self.raw_values(row))

    def _with_defaults(self, raw: Mapping[CanonicalField, str]) -> Dict[CanonicalField, str]:
        return {canonical: value or self._defaults.get(canonical, "") for canonical, value in raw.items()}

    def map(self, row: SheetRow) -> Union[Draft, RowRejection]:
        raw = self.raw_values(row)
        # Required fields are judged on the sheet alone; a default never fills them.
        missing = [canonical.value for canonical in self._required if not raw.get(canonical)]
        if missing:
            reason = f"row {row.number}: missing {', '.join(missing)}"
            LOGGER.debug("Rejected %s; non-empty cells: %s", reason,
                         [header for header, value in row.cells if value.strip()])
            return RowRejection(row_number=row.number, reason=reason, missing=missing)

        values = self._with_defaults(raw)
        draft = self._schema.draft_type(**{canonical.value: value for canonical, value in values.items()})
        LOGGER.debug("Row %s mapped to %s <%s>", row.number, draft.name, redact_email(draft.email))
        return draft


__all__ = ["RowMapper", "clean_value", "REQUIRED_FIELDS"]
