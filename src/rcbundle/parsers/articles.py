"""Translation Words markdown articles.

    # Faith              -> title
    ## Definition:       -> section "Definition:"
    ...

Text before the first "## " heading goes to the synthetic section
"Body". A document without any "## " heading has no sections at all;
its content is only kept in `raw`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

BODY_SECTION = "Body"


@dataclass(frozen=True)
class TwArticle:
    """A parsed word article."""

    title: str
    sections: dict[str, str] = field(default_factory=dict)
    raw: str = ""


def parse_tw_article(text: str) -> TwArticle:
    """Split a markdown article into title and named sections."""
    raw = text.strip()
    title = ""
    sections: dict[str, list[str]] = {}
    current: str | None = None
    preamble: list[str] = []

    for line in re.split(r"\r?\n", raw):
        if not title and line.startswith("# "):
            title = line[2:].strip()
            continue
        if line.startswith("## "):
            current = line[3:].strip() or BODY_SECTION
            sections.setdefault(current, [])
            continue
        if current is None:
            preamble.append(line)
        else:
            sections[current].append(line)

    if not sections:
        return TwArticle(title=title, sections={}, raw=raw)

    normalized = {name: "\n".join(lines).strip() for name, lines in sections.items()}
    body = "\n".join(preamble).strip()
    if body and not normalized.get(BODY_SECTION):
        normalized = {BODY_SECTION: body, **normalized}

    return TwArticle(title=title, sections=normalized, raw=raw)
