"""Translation Notes (TN) and Translation Word Links (TWL) TSV rows.

TN columns:  Reference, ID, Tags, SupportReference, Quote, Occurrence, Note
TWL columns: Reference, ID, Tags, OrigWords, Occurrence, TWLink

Header names are matched case-sensitively against a short synonym list
per logical column; a missing column reads as "". Every row derives a
parsed verse reference and, where applicable, a parsed rc link.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Iterable, Sequence, TypeVar, Union

from rcbundle.formats.links import RcLink, parse_rc_link
from rcbundle.formats.references import VerseRef, parse_reference
from rcbundle.formats.tsv import parse_tsv

# Logical column -> accepted header spellings, in precedence order
COLUMN_SYNONYMS: dict[str, tuple[str, ...]] = {
    "reference": ("Reference",),
    "id": ("ID", "Id"),
    "tags": ("Tags",),
    "support_reference": ("SupportReference", "Support Reference"),
    "quote": ("Quote",),
    "occurrence": ("Occurrence",),
    "note": ("Note",),
    "orig_words": ("OrigWords", "Orig Words"),
    "tw_link": ("TWLink", "TW Link"),
}

TAG_SEPARATORS = re.compile(r"[;,]")
LEADING_INT = re.compile(r"[-+]?\d+", re.ASCII)


@dataclass(frozen=True)
class TnRow:
    """One translation note."""

    reference: str
    id: str
    tags: tuple[str, ...]
    support_reference: str
    support_rc_link: RcLink | None
    quote: str
    occurrence: int | None
    note: str
    parsed_reference: VerseRef
    raw: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TwlRow:
    """One translation word link."""

    reference: str
    id: str
    tags: tuple[str, ...]
    orig_words: str
    occurrence: int | None
    tw_link: str
    tw_rc_link: RcLink | None
    parsed_reference: VerseRef
    raw: dict[str, str] = field(default_factory=dict)


TableRow = Union[TnRow, TwlRow]
RowT = TypeVar("RowT", TnRow, TwlRow)


def pick_field(record: dict[str, str], column: str) -> str:
    """Value of a logical column, trying each synonym in order."""
    for header in COLUMN_SYNONYMS[column]:
        if header in record:
            return record[header] or ""
    return ""


def split_tags(value: str) -> tuple[str, ...]:
    return tuple(p.strip() for p in TAG_SEPARATORS.split(value) if p.strip())


def parse_occurrence(value: str) -> int | None:
    match = LEADING_INT.match(value.strip())
    return int(match.group(0)) if match else None


def parse_tn_tsv(text: str) -> list[TnRow]:
    """Parse a TN TSV file into rows."""
    rows = []
    for record in parse_tsv(text).records:
        reference = pick_field(record, "reference")
        support_reference = pick_field(record, "support_reference")
        rows.append(
            TnRow(
                reference=reference,
                id=pick_field(record, "id"),
                tags=split_tags(pick_field(record, "tags")),
                support_reference=support_reference,
                support_rc_link=parse_rc_link(support_reference),
                quote=pick_field(record, "quote"),
                occurrence=parse_occurrence(pick_field(record, "occurrence")),
                note=pick_field(record, "note"),
                parsed_reference=parse_reference(reference),
                raw=record,
            )
        )
    return rows


def parse_twl_tsv(text: str) -> list[TwlRow]:
    """Parse a TWL TSV file into rows."""
    rows = []
    for record in parse_tsv(text).records:
        reference = pick_field(record, "reference")
        tw_link = pick_field(record, "tw_link")
        rows.append(
            TwlRow(
                reference=reference,
                id=pick_field(record, "id"),
                tags=split_tags(pick_field(record, "tags")),
                orig_words=pick_field(record, "orig_words"),
                occurrence=parse_occurrence(pick_field(record, "occurrence")),
                tw_link=tw_link,
                tw_rc_link=parse_rc_link(tw_link),
                parsed_reference=parse_reference(reference),
                raw=record,
            )
        )
    return rows


def verse_matches(row: TableRow, chapter: int, verse: int) -> bool:
    """True if the row's reference covers chapter:verse.

    A row whose reference did not parse never matches.
    """
    return row.parsed_reference.contains(chapter, verse)


def rows_for_verse(rows: Iterable[RowT], chapter: int, verse: int) -> list[RowT]:
    return [row for row in rows if verse_matches(row, chapter, verse)]


def chapters_covered(rows: Sequence[TableRow]) -> list[int]:
    """Sorted chapters referenced by parsable rows."""
    return sorted(
        {r.parsed_reference.chapter for r in rows if r.parsed_reference.is_valid}
    )


def row_to_dict(row: TableRow) -> dict:
    """JSON-ready dict of a row (raw record omitted)."""
    data = asdict(row)
    data.pop("raw", None)
    return data
