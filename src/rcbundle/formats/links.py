"""Relation strings, rc:// links and resource keys.

Manifests declare relations as loose strings ("en/tn?v=86") and table rows
point at other containers with rc links ("rc://en/ta/man/translate/figs-metaphor").
Both are parsed eagerly into structured values here; nothing downstream
pattern-matches the raw strings again.

Every parser in this module is total: malformed input yields None (or an
unresolvable ParsedRelation), never an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote

RC_SCHEME = "rc://"


@dataclass(frozen=True)
class ParsedRelation:
    """A manifest relation string decomposed into its parts.

    key is None when the string lacks a language or identifier segment;
    such a relation can never resolve.
    """

    raw: str
    language: str | None = None
    identifier: str | None = None
    version: str | None = None
    key: str | None = None

    @property
    def is_resolvable(self) -> bool:
        return self.key is not None


@dataclass(frozen=True)
class RcLink:
    """An rc://language/resource/container/path link."""

    raw: str
    language: str
    resource: str
    container: str
    path: str
    query: dict[str, str] = field(default_factory=dict)

    @property
    def slug(self) -> str:
        """Last path segment (article slug for tw links)."""
        return self.path.rsplit("/", 1)[-1]


def parse_query_string(value: str) -> dict[str, str]:
    """Decode a "k=v&k2=v2" query string; keys without a name are skipped."""
    out: dict[str, str] = {}
    if not value:
        return out
    for part in value.split("&"):
        if not part:
            continue
        raw_key, _, raw_val = part.partition("=")
        key = unquote(raw_key).strip()
        if not key:
            continue
        out[key] = unquote(raw_val).strip()
    return out


def parse_relation_ref(raw_relation: str) -> ParsedRelation:
    """Parse a relation string such as "en/ult?v=86".

    Args:
        raw_relation: Relation as declared in dublin_core.relation

    Returns:
        ParsedRelation (key None when unresolvable)
    """
    raw = raw_relation.strip()
    if not raw:
        return ParsedRelation(raw=raw_relation)

    relation_path, _, query_string = raw.partition("?")
    parts = [p for p in relation_path.split("/") if p]
    language = parts[0] if parts else None
    identifier = parts[1] if len(parts) > 1 else None
    version = parse_query_string(query_string).get("v") or None

    return ParsedRelation(
        raw=raw,
        language=language,
        identifier=identifier,
        version=version,
        key=f"{language}/{identifier}" if language and identifier else None,
    )


def parse_rc_link(raw_link: str) -> RcLink | None:
    """Parse an rc:// link.

    Args:
        raw_link: Link text, e.g. "rc://*/tw/dict/bible/kt/faith"

    Returns:
        RcLink, or None when the text is not an rc link with at least
        language, resource, container and one path segment
    """
    raw = raw_link.strip()
    if not raw.startswith(RC_SCHEME):
        return None

    path_part, _, query_string = raw[len(RC_SCHEME) :].partition("?")
    items = [p for p in path_part.split("/") if p]
    if len(items) < 4:
        return None

    language, resource, container, *rest = items
    return RcLink(
        raw=raw,
        language=language,
        resource=resource,
        container=container,
        path="/".join(rest),
        query=parse_query_string(query_string),
    )


def _derive_identifier(resource_id: str, language: str | None) -> str:
    resource_id = resource_id.strip()
    if language and resource_id.startswith(f"{language}_"):
        return resource_id[len(language) + 1 :]
    idx = resource_id.find("_")
    if idx > 0:
        return resource_id[idx + 1 :]
    return resource_id


def to_resource_key(resource: Any) -> str | None:
    """Derive the language/identifier identity key of a resource.

    Version and owner do not participate: "en_tn" from any owner at any
    version maps to "en/tn".

    Args:
        resource: Any object with `id` and `language` attributes

    Returns:
        "language/identifier", or None if either part is missing
    """
    language = (getattr(resource, "language", None) or "").strip()
    if not language:
        return None
    identifier = _derive_identifier(getattr(resource, "id", "") or "", language)
    identifier = identifier.strip()
    if not identifier:
        return None
    return f"{language}/{identifier}"
