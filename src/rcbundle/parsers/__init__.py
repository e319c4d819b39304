"""Parsers for translation helps content.

- tables.py: TN and TWL TSV rows
- articles.py: TW markdown articles
- usfm.py: verse splitting for source text previews
"""

from rcbundle.parsers.articles import TwArticle, parse_tw_article
from rcbundle.parsers.tables import (
    TnRow,
    TwlRow,
    parse_tn_tsv,
    parse_twl_tsv,
    rows_for_verse,
    verse_matches,
)
from rcbundle.parsers.usfm import SourceVerse, extract_book_id, parse_source_verses

__all__ = [
    "TwArticle",
    "parse_tw_article",
    "TnRow",
    "TwlRow",
    "parse_tn_tsv",
    "parse_twl_tsv",
    "rows_for_verse",
    "verse_matches",
    "SourceVerse",
    "extract_book_id",
    "parse_source_verses",
]
