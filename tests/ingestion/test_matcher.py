import pytest

from lead_sync.ingestion.matcher import ColumnMatcher, FieldRule, build_rules, normalize_header
from lead_sync.models import LEADS, SALESPERSONS, CanonicalField


@pytest.fixture()
def lead_matcher():
    return ColumnMatcher.for_entity(LEADS)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Full Name", "full_name"),
        ('  "Email"  ', "email"),
        ("'Post   Code'", "post_code"),
        ("Note 1", "note_1"),
        ("PHONE", "phone"),
        ("", ""),
    ],
)
def test_normalize_header(raw, expected):
    assert normalize_header(raw) == expected


def test_exact_aliases_bind_in_document_order(lead_matcher):
    binding = lead_matcher.match(["Full Name", "Email", "Phone"])

    assert binding.headers() == {"name": "Full Name", "email": "Email", "phone": "Phone"}
    assert binding.get(CanonicalField.EMAIL).index == 1


def test_exact_alias_beats_earlier_substring_match(lead_matcher):
    binding = lead_matcher.match(["Work Email Address", "Name", "Email"])

    assert binding.get(CanonicalField.EMAIL).header == "Email"


def test_substring_fallback_binds_renamed_columns(lead_matcher):
    binding = lead_matcher.match(["Contact Full Name", "Primary Email", "Mobile Phone Number", "Street Line 1"])

    assert binding.headers() == {
        "name": "Contact Full Name",
        "email": "Primary Email",
        "phone": "Mobile Phone Number",
        "street_address": "Street Line 1",
    }


def test_a_header_binds_to_one_field_only(lead_matcher):
    binding = lead_matcher.match(["Name", "Email", "Status"])

    assert binding.get(CanonicalField.STATUS).header == "Status"
    assert CanonicalField.LEAD_STATUS not in binding


def test_lead_status_and_status_bind_separately(lead_matcher):
    binding = lead_matcher.match(["Name", "Email", "Status", "Lead Status"])

    assert binding.get(CanonicalField.STATUS).header == "Status"
    assert binding.get(CanonicalField.LEAD_STATUS).header == "Lead Status"


def test_question_headers_are_not_keyword_candidates(lead_matcher):
    binding = lead_matcher.match(["Name", "What is your email?", "Contact email"])

    assert binding.get(CanonicalField.EMAIL).header == "Contact email"


def test_unresolved_fields_are_absent(lead_matcher):
    binding = lead_matcher.match(["Name", "Email"])

    assert CanonicalField.PHONE not in binding
    assert len(binding) == 2


def test_blank_headers_never_bind(lead_matcher):
    binding = lead_matcher.match(["", "Name", "Email"])

    assert binding.get(CanonicalField.NAME).index == 1


def test_overrides_replace_aliases_and_keywords():
    rules = build_rules(
        LEADS,
        {
            "phone": ["Cell"],
            "company": {"keywords": ["business"]},
        },
    )
    matcher = ColumnMatcher(rules)

    binding = matcher.match(["Name", "Email", "Cell", "Business Type"])

    assert rules[CanonicalField.PHONE] == FieldRule(aliases=("cell",), keywords=("phone", "telephone"))
    assert binding.get(CanonicalField.PHONE).header == "Cell"
    assert binding.get(CanonicalField.COMPANY).header == "Business Type"


def test_overrides_reject_fields_outside_the_schema():
    with pytest.raises(ValueError):
        build_rules(SALESPERSONS, {"lead_status": ["stage"]})
    with pytest.raises(ValueError):
        build_rules(LEADS, {"favourite_colour": ["colour"]})


def test_salesperson_rules_cover_department_and_region():
    matcher = ColumnMatcher.for_entity(SALESPERSONS)

    binding = matcher.match(["Name", "Email", "Phone", "Dept", "Territory"])

    assert binding.headers() == {
        "name": "Name",
        "email": "Email",
        "phone": "Phone",
        "department": "Dept",
        "region": "Territory",
    }
