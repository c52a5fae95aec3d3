"""Split raw CSV/TSV text into a header row and data rows."""

from __future__ import annotations

import csv
import re
from collections.abc import Iterator
from dataclasses import dataclass

TAB = "\t"
COMMA = ","
DELIMITER_NAMES = {TAB: "Tab", COMMA: "Comma"}

EMPTY_INPUT_ERROR = "The uploaded CSV file is empty."
NO_DATA_ROWS_ERROR = "CSV file must contain a header row and at least one data row."

_LINE_BREAK_RE = re.compile(r"\r?\n")


@dataclass(frozen=True)
class TokenRow:
    row_number: int  # 1-based file line, header is row 1
    raw: str
    fields: list[str]

    @property
    def is_blank(self) -> bool:
        return not self.raw.strip()


@dataclass(frozen=True)
class TokenGrid:
    delimiter: str
    headers: list[str]
    lines: tuple[str, ...]

    @property
    def delimiter_name(self) -> str:
        return DELIMITER_NAMES.get(self.delimiter, repr(self.delimiter))

    def rows(self) -> Iterator[TokenRow]:
        for offset, line in enumerate(self.lines, start=2):
            fields = split_row(line, self.delimiter) if line.strip() else []
            yield TokenRow(row_number=offset, raw=line, fields=fields)


def split_lines(text: str) -> list[str]:
    trimmed = text.lstrip("\ufeff").strip()
    if not trimmed:
        return []
    return _LINE_BREAK_RE.split(trimmed)


def detect_delimiter(header_line: str) -> str:
    return TAB if TAB in header_line else COMMA


def _clean_field(value: str) -> str:
    text = value.strip()
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        text = text[1:-1].strip()
    return text


def split_row(line: str, delimiter: str) -> list[str]:
    try:
        raw_fields = next(csv.reader([line], delimiter=delimiter), [])
    except csv.Error:
        raw_fields = line.split(delimiter)
    return [_clean_field(field) for field in raw_fields]


def tokenize(text: str | None) -> tuple[TokenGrid | None, str | None]:
    lines = split_lines(text or "")
    if not lines:
        return None, EMPTY_INPUT_ERROR

    delimiter = detect_delimiter(lines[0])
    headers = split_row(lines[0], delimiter)
    grid = TokenGrid(delimiter=delimiter, headers=headers, lines=tuple(lines[1:]))
    if not grid.lines:
        return grid, NO_DATA_ROWS_ERROR
    return grid, None
