"""CSV tokenizer for Google Sheets exports.

Quote state is tracked across the whole document, so a line break inside a
quoted field belongs to the field rather than ending the record.
"""
from __future__ import annotations

from typing import List, Tuple

QUOTE = '"'
DELIMITER = ","
_BOM = "\ufeff"


def tokenize_csv(text: str) -> List[List[str]]:
    """Split CSV text into records of trimmed string fields.

    Blank records are skipped. Each record keeps as many fields as its own
    delimiters produce, including empty trailing ones.
    """

    return [fields for _, fields in tokenize_rows(text)]


def tokenize_rows(text: str) -> List[Tuple[int, List[str]]]:
    """Like :func:`tokenize_csv`, pairing each record with its 1-based sheet row.

    Skipped blank lines still count as rows; line breaks inside quoted fields
    do not.
    """

    if not text:
        return []
    if text.startswith(_BOM):
        text = text[1:]

    records: List[Tuple[int, List[str]]] = []
    row = 1
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    # True once a field of the current record was quoted, so a lone `""` is still a record.
    record_was_quoted = False
    index = 0
    length = len(text)

    def end_field() -> None:
        fields.append("".join(current).strip())
        current.clear()

    def end_record() -> None:
        end_field()
        if len(fields) > 1 or fields[0] or record_was_quoted:
            records.append((row, list(fields)))
        fields.clear()

    while index < length:
        char = text[index]

        if in_quotes:
            if char == QUOTE:
                if index + 1 < length and text[index + 1] == QUOTE:
                    current.append(QUOTE)
                    index += 2
                    continue
                in_quotes = False
            else:
                current.append(char)
            index += 1
            continue

        if char == QUOTE:
            if not "".join(current).strip():
                # Opening quote: padding before it is not part of the value.
                current.clear()
                in_quotes = True
                record_was_quoted = True
            # A stray quote inside an unquoted field is dropped.
        elif char == DELIMITER:
            end_field()
        elif char == "\n":
            if current and current[-1] == "\r":
                current.pop()
            end_record()
            record_was_quoted = False
            row += 1
        else:
            current.append(char)
        index += 1

    if current or fields or record_was_quoted:
        end_record()

    return records


def serialize_record(fields: List[str]) -> str:
    """Render one record with standard CSV quoting."""

    rendered = []
    for value in fields:
        if any(char in value for char in (DELIMITER, QUOTE, "\n", "\r")):
            rendered.append(QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE)
        else:
            rendered.append(value)
    return DELIMITER.join(rendered)


__all__ = ["tokenize_csv", "tokenize_rows", "serialize_record"]
