"""Format primitives for translation resource data.

Pure, total parsers used by everything above them:
- tsv.py: quote-aware TSV tokenizer
- references.py: chapter:verse[-verse] references
- links.py: rc:// links, manifest relation strings, resource keys
- candidates.py: ordered "first match wins" combinator
"""

from rcbundle.formats.candidates import first_matching
from rcbundle.formats.links import (
    ParsedRelation,
    RcLink,
    parse_query_string,
    parse_rc_link,
    parse_relation_ref,
    to_resource_key,
)
from rcbundle.formats.references import VerseRef, parse_reference
from rcbundle.formats.tsv import ParsedTsv, parse_tsv

__all__ = [
    "first_matching",
    "ParsedRelation",
    "RcLink",
    "parse_query_string",
    "parse_rc_link",
    "parse_relation_ref",
    "to_resource_key",
    "VerseRef",
    "parse_reference",
    "ParsedTsv",
    "parse_tsv",
]
