import pytest

from lead_sync.ingestion.mapper import RowMapper, clean_value
from lead_sync.ingestion.matcher import ColumnMatcher
from lead_sync.models import LEADS, SALESPERSONS, CanonicalField, LeadDraft, RowRejection, SalespersonDraft, SheetRow

HEADER = ["Full Name", "Email", "Phone", "Status"]


def _mapper(header=HEADER, schema=LEADS, **kwargs):
    binding = ColumnMatcher.for_entity(schema).match(header)
    return RowMapper(schema, binding, **kwargs)


def _row(values, header=HEADER, number=2):
    return SheetRow.from_values(number, header, values)


def test_row_maps_to_lead_draft_with_defaults():
    header = ["Full Name", "Email", "Phone"]
    mapper = _mapper(header)

    draft = mapper.map(_row(["John Doe", "john@x.com", "555-1111"], header))

    assert draft == LeadDraft(name="John Doe", email="john@x.com", phone="555-1111")
    assert draft.status == "Not lifted"
    assert draft.assigned_to == "Unassigned"


def test_missing_email_is_rejected_with_reason():
    mapper = _mapper()

    outcome = mapper.map(_row(["Jane Doe", "", "555", "New"], number=7))

    assert isinstance(outcome, RowRejection)
    assert outcome.row_number == 7
    assert outcome.missing == ["email"]
    assert "row 7" in outcome.reason


def test_name_and_email_suffice_even_when_everything_else_is_empty():
    mapper = _mapper()

    draft = mapper.map(_row(["Jane Doe", "jane@x.com", "", ""]))

    assert isinstance(draft, LeadDraft)
    assert draft.phone == ""
    assert draft.status == "Not lifted"


def test_phone_requirement_is_configurable():
    mapper = _mapper(phone_required=True)

    outcome = mapper.map(_row(["Jane Doe", "jane@x.com", "", ""]))

    assert isinstance(outcome, RowRejection)
    assert outcome.missing == ["phone"]
    assert CanonicalField.PHONE in mapper.required_fields


def test_bound_values_are_cleaned_and_short_rows_padded():
    mapper = _mapper()

    draft = mapper.map(_row(["'Jane Doe'", ' "jane@x.com" ']))

    assert draft.name == "Jane Doe"
    assert draft.email == "jane@x.com"
    assert draft.phone == ""


def test_default_overrides_apply_to_unbound_and_empty_values():
    mapper = _mapper(defaults={CanonicalField.STATUS: "New", CanonicalField.ASSIGNED_TO: "Pool"})

    draft = mapper.map(_row(["Jane Doe", "jane@x.com", "555", ""]))

    assert draft.status == "New"
    assert draft.assigned_to == "Pool"


def test_defaults_never_satisfy_required_fields():
    mapper = _mapper(defaults={CanonicalField.EMAIL: "inbox@x.com", CanonicalField.PHONE: "000"}, phone_required=True)

    outcome = mapper.map(_row(["Jane", "", "", ""]))

    assert isinstance(outcome, RowRejection)
    assert outcome.missing == ["email", "phone"]


def test_missing_bindings_lists_unbound_required_fields():
    mapper = _mapper(["Full Name", "Phone"])

    assert mapper.missing_bindings() == [CanonicalField.EMAIL]


def test_salesperson_rows_map_to_salesperson_drafts():
    header = ["Name", "Email", "Phone", "Department", "Region"]
    mapper = _mapper(header, schema=SALESPERSONS)

    draft = mapper.map(_row(["Sam Seller", "sam@x.com", "555", "Sales", "North"], header))

    assert draft == SalespersonDraft(name="Sam Seller", email="sam@x.com", phone="555", department="Sales", region="North")


@pytest.mark.parametrize("raw, expected", [(None, ""), ("  x ", "x"), ('"quoted"', "quoted"), ("'", "")])
def test_clean_value(raw, expected):
    assert clean_value(raw) == expected
