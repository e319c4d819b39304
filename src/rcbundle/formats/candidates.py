"""Ordered candidate selection.

Fallback chains (manifest file names, manifest format rules, book files)
are expressed as ordered candidate lists; precedence lives in the list,
and this combinator consumes it.
"""

from __future__ import annotations

from typing import Callable, Iterable, TypeVar

T = TypeVar("T")


def first_matching(
    candidates: Iterable[T],
    predicate: Callable[[T], bool] = bool,
) -> T | None:
    """Return the first candidate satisfying predicate.

    Args:
        candidates: Candidates in precedence order
        predicate: Acceptance test (default: truthiness)

    Returns:
        First accepted candidate, or None if none qualifies
    """
    for candidate in candidates:
        if predicate(candidate):
            return candidate
    return None
