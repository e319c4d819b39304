"""Verse reference parsing for TSV rows.

Only "chapter:verse" and "chapter:verse-verse" are understood. Anything
else (front matter "front:intro", chapter ranges, comma lists) keeps its
raw text and gets null numeric fields, so it never matches a verse query.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

REFERENCE_PATTERN = re.compile(r"^(\d+):(\d+)(?:-(\d+))?$", re.ASCII)


@dataclass(frozen=True)
class VerseRef:
    """A parsed chapter:verse[-verse] reference."""

    raw: str
    chapter: int | None = None
    verse_start: int | None = None
    verse_end: int | None = None

    @property
    def is_valid(self) -> bool:
        return self.chapter is not None and self.verse_start is not None

    def contains(self, chapter: int, verse: int) -> bool:
        """True if chapter/verse falls inside this reference (inclusive)."""
        if self.chapter != chapter or self.verse_start is None:
            return False
        end = self.verse_end if self.verse_end is not None else self.verse_start
        return self.verse_start <= verse <= end


def parse_reference(text: str) -> VerseRef:
    """Parse a reference string.

    Args:
        text: Reference such as "1:3" or "1:3-5"

    Returns:
        VerseRef; numeric fields are None when the text is malformed
    """
    raw = text.strip()
    match = REFERENCE_PATTERN.match(raw)
    if not match:
        return VerseRef(raw=raw)

    chapter = int(match.group(1))
    verse_start = int(match.group(2))
    verse_end = int(match.group(3)) if match.group(3) else verse_start
    return VerseRef(
        raw=raw, chapter=chapter, verse_start=verse_start, verse_end=verse_end
    )
