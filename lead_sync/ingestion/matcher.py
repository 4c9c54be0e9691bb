"""Column matching: map arbitrary sheet headers onto canonical fields."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Sequence, Tuple

from ..models import BoundColumn, CanonicalField, ColumnBinding, EntitySchema, LEADS, SALESPERSONS

LOGGER = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_QUOTES = "\"'"


@dataclass(frozen=True)
class FieldRule:
    """Exact aliases and fallback substring keywords for one canonical field.

    Aliases are compared against normalized headers, so they are written in
    normalized form (``full_name`` rather than ``Full Name``).
    """

    aliases: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()


AliasTable = Mapping[CanonicalField, FieldRule]

LEAD_RULES: AliasTable = {
    CanonicalField.NAME: FieldRule(("full_name", "name", "fname"), ("full", "name")),
    CanonicalField.EMAIL: FieldRule(("email", "email_address", "e-mail"), ("email",)),
    CanonicalField.PHONE: FieldRule(("phone", "telephone", "phone_number", "mobile"), ("phone", "telephone")),
    CanonicalField.COMPANY: FieldRule(("company", "organisation", "organization"), ("company", "property")),
    CanonicalField.STATUS: FieldRule(("status",)),
    CanonicalField.ASSIGNED_TO: FieldRule(("assigned_to", "owner", "assignee"), ("assigned", "owner")),
    CanonicalField.NOTE1: FieldRule(("note1", "note_1", "notes")),
    CanonicalField.NOTE2: FieldRule(("note2", "note_2")),
    CanonicalField.STREET_ADDRESS: FieldRule(("street_address", "address"), ("street", "address")),
    CanonicalField.POST_CODE: FieldRule(("post_code", "postcode", "postal_code", "zip", "zip_code"), ("post", "zip")),
    CanonicalField.LEAD_STATUS: FieldRule(("lead_status",), ("lead", "status")),
    CanonicalField.ELECTRICITY_BILL: FieldRule(("electricity_bill",), ("electricity", "bill")),
}

SALESPERSON_RULES: AliasTable = {
    CanonicalField.NAME: FieldRule(("full_name", "name", "fname"), ("full", "name")),
    CanonicalField.EMAIL: FieldRule(("email", "email_address", "e-mail"), ("email",)),
    CanonicalField.PHONE: FieldRule(("phone", "telephone", "phone_number", "mobile"), ("phone", "telephone")),
    CanonicalField.DEPARTMENT: FieldRule(("department", "dept", "team"), ("department",)),
    CanonicalField.REGION: FieldRule(("region", "territory", "area"), ("region",)),
}

DEFAULT_RULES: Mapping[str, AliasTable] = {
    LEADS.name: LEAD_RULES,
    SALESPERSONS.name: SALESPERSON_RULES,
}


def normalize_header(value: str) -> str:
    """Normalize a header for comparison.

    >>> normalize_header('  "Full   Name" ')
    'full_name'
    """

    text = str(value).strip().lower()
    if text[:1] and text[0] in _QUOTES:
        text = text[1:]
    if text[-1:] and text[-1] in _QUOTES:
        text = text[:-1]
    return _WHITESPACE.sub("_", text.strip())


class ColumnMatcher:
    """Resolve a :class:`ColumnBinding` from a header record.

    Resolution runs in two passes over the field table. The first binds exact
    alias matches for every field; the second falls back to keyword substring
    matches for the fields still unbound. A header is consumed by the first
    field that binds it.
    """

    def __init__(self, rules: AliasTable) -> None:
        self._rules: Dict[CanonicalField, FieldRule] = dict(rules)

    @classmethod
    def for_entity(cls, schema: EntitySchema, overrides: Optional[Mapping[Any, Any]] = None) -> "ColumnMatcher":
        return cls(build_rules(schema, overrides))

    @property
    def rules(self) -> Dict[CanonicalField, FieldRule]:
        return dict(self._rules)

    def match(self, headers: Sequence[str]) -> ColumnBinding:
        normalized = [normalize_header(header) for header in headers]
        available: Dict[int, str] = {index: key for index, key in enumerate(normalized) if key}
        binding = ColumnBinding()

        for canonical, rule in self._rules.items():
            index = self._find_exact(rule, normalized, available)
            if index is not None:
                self._bind(binding, canonical, index, headers, available)

        for canonical, rule in self._rules.items():
            if canonical in binding or not rule.keywords:
                continue
            index = self._find_keyword(rule, available)
            if index is not None:
                self._bind(binding, canonical, index, headers, available)

        LOGGER.debug("Resolved columns: %s", binding.headers())
        unresolved = [canonical.value for canonical in self._rules if canonical not in binding]
        if unresolved:
            LOGGER.debug("Unresolved fields: %s", unresolved)
        return binding

    @staticmethod
    def _find_exact(rule: FieldRule, normalized: Sequence[str], available: Mapping[int, str]) -> Optional[int]:
        for alias in rule.aliases:
            for index, key in enumerate(normalized):
                if index in available and key == alias:
                    return index
        return None

    @staticmethod
    def _find_keyword(rule: FieldRule, available: Mapping[int, str]) -> Optional[int]:
        for index in sorted(available):
            key = available[index]
            # Question-style headers are survey prompts, not column titles.
            if "?" in key:
                continue
            if any(keyword in key for keyword in rule.keywords):
                return index
        return None

    @staticmethod
    def _bind(
        binding: ColumnBinding,
        canonical: CanonicalField,
        index: int,
        headers: Sequence[str],
        available: MutableMapping[int, str],
    ) -> None:
        binding.bind(canonical, BoundColumn(index=index, header=headers[index]))
        del available[index]


def build_rules(schema: EntitySchema, overrides: Optional[Mapping[Any, Any]] = None) -> Dict[CanonicalField, FieldRule]:
    """Return the entity's default rule table with configuration overrides applied.

    ``overrides`` maps field names to either a list of aliases or a mapping
    with ``aliases`` and/or ``keywords`` lists. Fields outside the entity's
    schema are rejected.
    """

    rules: Dict[CanonicalField, FieldRule] = dict(DEFAULT_RULES.get(schema.name, {}))
    for key, value in (overrides or {}).items():
        canonical = CanonicalField.parse(key)
        if canonical not in schema.fields:
            raise ValueError(f"Field '{canonical.value}' is not part of the {schema.name} schema")
        current = rules.get(canonical, FieldRule())
        if isinstance(value, Mapping):
            aliases = _normalize_terms(value.get("aliases", current.aliases))
            keywords = _normalize_terms(value.get("keywords", current.keywords))
        else:
            aliases = _normalize_terms(value)
            keywords = current.keywords
        rules[canonical] = FieldRule(aliases=aliases, keywords=keywords)
    return {canonical: rules[canonical] for canonical in schema.fields if canonical in rules}


def _normalize_terms(values: Any) -> Tuple[str, ...]:
    if isinstance(values, str):
        values = [values]
    terms: List[str] = []
    for value in values or ():
        term = normalize_header(value)
        if term and term not in terms:
            terms.append(term)
    return tuple(terms)


__all__ = [
    "FieldRule",
    "AliasTable",
    "ColumnMatcher",
    "LEAD_RULES",
    "SALESPERSON_RULES",
    "DEFAULT_RULES",
    "build_rules",
    "normalize_header",
]
