"""Minimal USFM verse splitting for previews.

Only \\c and \\v markers are interpreted; any other marker line is
skipped and continuation lines are appended to the open verse. This is
not a USFM parser.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

CHAPTER_MARKER = re.compile(r"^\s*\\c\s+(\d+)")
VERSE_MARKER = re.compile(r"^\s*\\v\s+(\d+)\S*\s*(.*)$")
ANY_MARKER = re.compile(r"^\s*\\")
BOOK_ID_MARKERS = (
    re.compile(r"^\s*\\id\s+([^\s\\]+)", re.MULTILINE),
    re.compile(r"^\s*\\toc3\s+([^\s\\]+)", re.MULTILINE),
)


@dataclass(frozen=True)
class SourceVerse:
    chapter: int
    verse: int
    text: str


def parse_source_verses(usfm_text: str) -> list[SourceVerse]:
    """Split USFM into verses (chapter defaults to 1 until a \\c marker)."""
    verses: list[SourceVerse] = []
    chapter = 1
    current: list | None = None  # [chapter, verse, text]

    def flush():
        if current is not None and current[2].strip():
            verses.append(SourceVerse(current[0], current[1], current[2].strip()))

    for line in re.split(r"\r?\n", usfm_text):
        chapter_match = CHAPTER_MARKER.match(line)
        if chapter_match:
            flush()
            current = None
            chapter = int(chapter_match.group(1)) or chapter
            continue

        verse_match = VERSE_MARKER.match(line)
        if verse_match:
            flush()
            current = [chapter, int(verse_match.group(1)), verse_match.group(2) or ""]
            continue

        if current is None or ANY_MARKER.match(line):
            continue
        current[2] = f"{current[2]} {line.strip()}".strip()

    flush()
    return [v for v in verses if v.chapter > 0 and v.verse > 0]


def extract_book_id(usfm_text: str) -> str | None:
    """Book code from \\id (or \\toc3), lowercased."""
    for pattern in BOOK_ID_MARKERS:
        match = pattern.search(usfm_text)
        if match:
            cleaned = re.sub(r"[^a-z0-9_-]", "", match.group(1).lower())
            if cleaned:
                return cleaned
    return None
