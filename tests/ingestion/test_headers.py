from lead_sync.ingestion.headers import (
    HeaderOptions,
    has_header_tokens,
    looks_like_data,
    looks_like_header,
    resolve_header,
)
from lead_sync.ingestion.tokenizer import tokenize_csv


def test_first_record_is_header_by_default():
    records = tokenize_csv("Full Name,Email,Phone\nJohn Doe,john@x.com,555-1111\n")

    resolution = resolve_header(records)

    assert resolution.header == ["Full Name", "Email", "Phone"]
    assert resolution.header_index == 0
    assert resolution.data_start == 1
    assert resolution.resolved
    assert not resolution.dropped_leading_column


def test_data_like_first_record_triggers_scan_for_header():
    records = tokenize_csv(
        "_id,what_is_your_bill,12\n"
        "x,y,z\n"
        "Full Name,Email,Phone\n"
        "Ann Lee,ann@x.com,555\n"
    )

    resolution = resolve_header(records)

    assert resolution.header_index == 2
    assert resolution.data_start == 3
    assert resolution.header == ["Full Name", "Email", "Phone"]
    assert resolution.resolved


def test_first_record_without_tokens_defers_to_later_header():
    records = tokenize_csv("Lead export,,\nName,Email,Phone\nAnn,ann@x.com,555\n")

    resolution = resolve_header(records)

    assert resolution.header_index == 1
    assert resolution.header == ["Name", "Email", "Phone"]


def test_scan_is_bounded_and_falls_back_to_first_record():
    filler = "".join(f"_{index},{index},x\n" for index in range(10))
    records = tokenize_csv(filler + "Name,Email,Phone\n")

    resolution = resolve_header(records, HeaderOptions(scan_limit=5))

    assert resolution.header_index == 0
    assert resolution.data_start == 1
    assert not resolution.resolved
    assert resolution.warnings


def test_malformed_leading_column_is_dropped_from_header_and_data():
    records = tokenize_csv(
        "what_type_of_property?,Full Name,Email,Phone\nHouse,Jane Doe,jane@x.com,555-2222\n"
    )

    resolution = resolve_header(records)

    assert resolution.header_index == 0
    assert resolution.dropped_leading_column
    assert resolution.header == ["Full Name", "Email", "Phone"]
    assert resolution.data_records(records) == [(1, ["Jane Doe", "jane@x.com", "555-2222"])]


def test_long_leading_header_is_treated_as_noise():
    long_header = "Please tell us everything about the property you live in today"
    records = [[long_header, "Name", "Email", "Phone"], ["flat", "Bo", "bo@x.com", "1"]]

    resolution = resolve_header(records, HeaderOptions(leading_column_max_length=50))

    assert resolution.header == ["Name", "Email", "Phone"]


def test_leading_column_threshold_is_tunable():
    records = [["Short note", "Name", "Email", "Phone"]]

    resolution = resolve_header(records, HeaderOptions(leading_column_max_length=5))

    assert resolution.dropped_leading_column


def test_empty_records_resolve_to_empty_header():
    resolution = resolve_header([])

    assert resolution.header == []
    assert not resolution.resolved


def test_helpers_detect_data_and_tokens():
    assert looks_like_data(["123", "Name"])
    assert looks_like_data(["How did you hear about us?"])
    assert not looks_like_data(["Name", "Email"])
    assert has_header_tokens(["Full", "E-mail / Email", "Mobile Phone"])
    assert not has_header_tokens(["Name", "Email"])


def test_partial_header_is_kept_over_later_rows_mentioning_tokens():
    records = tokenize_csv(
        "Name,Email,Mobile\n"
        "Full Name Jr,name@email.com,phone me after 5\n"
    )

    resolution = resolve_header(records)

    assert resolution.header_index == 0
    assert resolution.header == ["Name", "Email", "Mobile"]
    assert resolution.resolved
    assert not resolution.warnings


def test_looks_like_header_needs_several_titles_and_a_token():
    assert looks_like_header(["Name", "Email", "Mobile"])
    assert not looks_like_header(["Lead export", "", ""])
    assert not looks_like_header(["Email"])
    assert not looks_like_header(["Colour", "Size"])
