"""Quote-aware TSV tokenizer for translation-helps tables.

TN and TWL files are "mostly" TSV: fields may be wrapped in double quotes,
and quoted fields may carry literal tabs, line breaks and doubled quotes.
The input is scanned character by character.

Contract:
- Leading byte-order mark is stripped
- First non-blank row is the header row, whatever it contains
- Rows whose cells are all blank are dropped
- Missing trailing cells become ""
"""

from __future__ import annotations

from dataclasses import dataclass, field

BOM = "\ufeff"


@dataclass(frozen=True)
class ParsedTsv:
    """Header row plus one field-name -> value mapping per record."""

    headers: list[str] = field(default_factory=list)
    records: list[dict[str, str]] = field(default_factory=list)


def _normalize_header(header: str) -> str:
    return header.replace(BOM, "").strip()


def _is_blank(row: list[str]) -> bool:
    return not any(cell.strip() for cell in row)


def _tokenize(text: str) -> list[list[str]]:
    rows: list[list[str]] = []
    row: list[str] = []
    cell: list[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    while i < length:
        ch = text[i]

        if ch == '"':
            if in_quotes and i + 1 < length and text[i + 1] == '"':
                cell.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
            i += 1
            continue

        if not in_quotes and ch == "\t":
            row.append("".join(cell))
            cell = []
            i += 1
            continue

        if not in_quotes and ch in "\r\n":
            if ch == "\r" and i + 1 < length and text[i + 1] == "\n":
                i += 1
            row.append("".join(cell))
            cell = []
            if not _is_blank(row):
                rows.append(row)
            row = []
            i += 1
            continue

        cell.append(ch)
        i += 1

    # Final line without a trailing newline
    if cell or row:
        row.append("".join(cell))
        if not _is_blank(row):
            rows.append(row)

    return rows


def parse_tsv(text: str) -> ParsedTsv:
    """Parse TSV text into headers and records.

    Args:
        text: Raw file content

    Returns:
        ParsedTsv; empty when the text has no non-blank rows
    """
    if text.startswith(BOM):
        text = text[1:]

    rows = _tokenize(text)
    if not rows:
        return ParsedTsv()

    headers = [_normalize_header(h) for h in rows[0]]
    records = []
    for values in rows[1:]:
        record = {}
        for idx, header in enumerate(headers):
            record[header] = values[idx] if idx < len(values) else ""
        records.append(record)

    return ParsedTsv(headers=headers, records=records)
