"""Book file selection from a project list.

Given candidate paths (declared in a manifest, or discovered by listing
the container) pick the one file for a requested book.

Matching rule: a path matches book id "exo" when its explicit identifier
or its basename equals "exo", or contains it as a token bounded by
`.`, `_`, `-`, `/` or the ends of the string. "01-EXO.usfm" matches,
"ex" does not match "exo". Without a request, or without a match, the
first path wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Mapping, Sequence

from rcbundle.formats.candidates import first_matching

SOURCE_TEXT_EXTENSIONS = frozenset({".usfm", ".sfm", ".txt"})
TSV_EXTENSIONS = frozenset({".tsv"})
ARTICLE_EXTENSIONS = frozenset({".md"})

PROJECT_PREFIX_PATTERN = re.compile(r"^(tn|twl)_", re.IGNORECASE)


@dataclass(frozen=True)
class BookCandidate:
    """The selected file and the book id it stands for."""

    book_id: str
    path: str


def sanitize_relative_path(rel_path: str) -> str:
    """Strip leading ./ and / and collapse repeated slashes."""
    cleaned = re.sub(r"^[./]+", "", rel_path.strip())
    return re.sub(r"/+", "/", cleaned)


def extension_lower(rel_path: str) -> str:
    return PurePosixPath(rel_path).suffix.lower()


def basename_lower(rel_path: str) -> str:
    return PurePosixPath(rel_path).name.lower()


def has_extension(rel_path: str, extensions: frozenset[str]) -> bool:
    return extension_lower(rel_path) in extensions


def derive_project_id(rel_path: str, fallback: str) -> str:
    """Book id from a file name: strip tn_/twl_ prefix and extension."""
    stem = PurePosixPath(rel_path).name
    if "." in stem:
        stem = stem.rsplit(".", 1)[0]
    candidate = PROJECT_PREFIX_PATTERN.sub("", stem).strip()
    return candidate.lower() if candidate else fallback


def normalize_book_id(book_id: str | None) -> str | None:
    if not book_id:
        return None
    normalized = book_id.strip().lower()
    return normalized or None


def matches_book_identifier(candidate: str | None, book_id: str) -> bool:
    """True if candidate equals book_id or holds it as a bounded token."""
    if not candidate:
        return False
    normalized = candidate.strip().lower()
    if not normalized:
        return False
    if normalized == book_id:
        return True
    pattern = rf"(^|[._\-/]){re.escape(book_id)}([._\-/]|$)"
    return re.search(pattern, normalized) is not None


def pick_candidate_path(
    paths: Sequence[str],
    explicit_ids: Mapping[str, str | None] | None = None,
    book_id: str | None = None,
) -> BookCandidate | None:
    """Pick the file for a book out of candidate paths.

    Args:
        paths: Candidate paths in precedence order
        explicit_ids: Manifest-declared identifier per path
        book_id: Requested book (any case), or None for "first file"

    Returns:
        BookCandidate, or None only when paths is empty
    """
    if not paths:
        return None
    explicit_ids = explicit_ids or {}
    normalized = normalize_book_id(book_id)

    if normalized:
        match = first_matching(
            paths,
            lambda p: matches_book_identifier(explicit_ids.get(p), normalized)
            or matches_book_identifier(PurePosixPath(p).name, normalized),
        )
        if match is not None:
            return BookCandidate(book_id=normalized, path=match)

    fallback_path = paths[0]
    fallback_id = explicit_ids.get(fallback_path) or derive_project_id(
        fallback_path, normalized or "unknown"
    )
    return BookCandidate(book_id=fallback_id, path=fallback_path)
