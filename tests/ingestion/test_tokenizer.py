import csv
import io

import pytest

from lead_sync.ingestion.tokenizer import serialize_record, tokenize_csv, tokenize_rows


def test_simple_records_are_split_on_commas_and_newlines():
    records = tokenize_csv("Full Name,Email,Phone\nJohn Doe,john@x.com,555-1111\n")

    assert records == [["Full Name", "Email", "Phone"], ["John Doe", "john@x.com", "555-1111"]]


def test_quoted_fields_keep_commas_quotes_and_newlines():
    text = 'name,notes\n"Doe, Jane","Said ""hi""\nthen left"\n'

    records = tokenize_csv(text)

    assert records == [["name", "notes"], ["Doe, Jane", 'Said "hi"\nthen left']]


def test_blank_lines_are_skipped_and_trailing_empties_kept():
    records = tokenize_csv("a,b,c\n\n   \n1,,\n")

    assert records == [["a", "b", "c"], ["1", "", ""]]


def test_fields_are_trimmed_and_crlf_is_accepted():
    records = tokenize_csv(" a , b \r\n 1 ,  \"2\" \r\n")

    assert records == [["a", "b"], ["1", "2"]]


def test_records_keep_their_own_field_count():
    records = tokenize_csv("a,b,c\n1,2\n1,2,3,4\n")

    assert [len(record) for record in records] == [3, 2, 4]


def test_bom_and_missing_final_newline():
    records = tokenize_csv("\ufeffEmail,Name\nx@y.com,X")

    assert records == [["Email", "Name"], ["x@y.com", "X"]]


def test_empty_input_yields_no_records():
    assert tokenize_csv("") == []
    assert tokenize_csv("\n\n") == []


def test_lone_quoted_empty_field_is_a_record():
    assert tokenize_csv('""\n') == [[""]]


@pytest.mark.parametrize(
    "value",
    [
        "Smith, John",
        'The "best" lead',
        "line one\nline two",
        'all of it, "quoted"\nand more',
    ],
)
def test_round_trip_with_standard_csv_quoting(value):
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(["id", value])
    text = buffer.getvalue()

    records = tokenize_csv(text)

    assert records == [["id", value]]
    assert serialize_record(records[0]) + "\n" == text


def test_rows_are_numbered_as_sheet_rows():
    text = 'Name,Note\n\nAnn,"two\nlines"\nBo,x\n'

    rows = tokenize_rows(text)

    assert rows == [(1, ["Name", "Note"]), (3, ["Ann", "two\nlines"]), (4, ["Bo", "x"])]
