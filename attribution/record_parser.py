"""
Record Parser Module - Delimited report decoding

Turns the raw text of one exported attribution report into a header list and
fixed-schema rows.

Quoting rules:
- A doubled quote ("") is always a literal quote character
- A single quote toggles the "inside quoted field" state
- The delimiter only ends a field outside quotes
- An unterminated quote is tolerated; the partial field is still emitted

Example:
    'A1,"Red, Large",3'  -> ["A1", "Red, Large", "3"]
    'x,"a ""b"" c"'     -> ["x", 'a "b" c']
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

DEFAULT_DELIMITER = ","
BYTE_ORDER_MARK = "\ufeff"

_LINE_BREAK = re.compile(r"\r?\n")


@dataclass(frozen=True)
class RowSchema:
    """Ordered header names with a name -> position lookup."""

    headers: tuple[str, ...]
    index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Later duplicates shadow earlier ones
        object.__setattr__(self, "index", {name: pos for pos, name in enumerate(self.headers)})

    def __len__(self) -> int:
        return len(self.headers)


@dataclass(frozen=True)
class Row:
    """One data line, values aligned to its file's schema."""

    schema: RowSchema
    values: tuple[str, ...]

    def get(self, name: str) -> str:
        """Value for a column name, or "" when the column is absent."""
        pos = self.schema.index.get(name)
        if pos is None:
            return ""
        return self.values[pos]

    def __getitem__(self, name: str) -> str:
        return self.get(name)

    def as_dict(self) -> dict[str, str]:
        return {name: self.values[pos] for name, pos in self.schema.index.items()}


@dataclass
class ParsedReport:
    """Headers and rows of a single report."""

    headers: list[str] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)


def split_fields(line: str, delimiter: str = DEFAULT_DELIMITER) -> list[str]:
    """
    Split one line into trimmed field values.

    Args:
        line: A single line without its line terminator.
        delimiter: Field separator character.

    Returns:
        List of field values, always at least one element.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char == '"' and i + 1 < length and line[i + 1] == '"':
            current.append('"')
            i += 2
            continue
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current).strip())
    return fields


def normalize_header(name: str) -> str:
    """Trim a header name and drop byte-order-mark artifacts."""
    return name.replace(BYTE_ORDER_MARK, "").strip()


def build_row(schema: RowSchema, values: Sequence[str]) -> Row:
    """Zip values against the schema, padding or truncating to its width."""
    width = len(schema)
    aligned = [value.strip() for value in values[:width]]
    if len(aligned) < width:
        aligned.extend([""] * (width - len(aligned)))
    return Row(schema=schema, values=tuple(aligned))


def parse_csv(text: str, delimiter: str = DEFAULT_DELIMITER) -> ParsedReport:
    """
    Parse a full report text.

    Blank lines are skipped; the first remaining line is the header.

    Args:
        text: Decoded report content.
        delimiter: Field separator character.

    Returns:
        ParsedReport with the header list and one Row per data line.
    """
    lines = [line for line in _LINE_BREAK.split(text) if line.strip() != ""]
    if not lines:
        return ParsedReport()

    headers = [normalize_header(name) for name in split_fields(lines[0], delimiter)]
    schema = RowSchema(tuple(headers))
    rows = [build_row(schema, split_fields(line, delimiter)) for line in lines[1:]]

    return ParsedReport(headers=headers, rows=rows)


def decode_report(payload: bytes | str, encoding: str = "utf-8-sig") -> str:
    """
    Decode raw upload bytes into text.

    Bytes that are invalid in `encoding` become U+FFFD so the rest of the
    report still parses.
    """
    if isinstance(payload, str):
        return payload
    return payload.decode(encoding, errors="replace")
