"""Manifest format detection and normalization.

Resource packages in the wild carry one of several incompatible manifest
schemas. Detection is an ordered rule table; the first match wins:

1. dublin_core object            -> resource-container
2. resource_container object     -> tcore-resource-container
3. meta.format "scripture burrito" -> scripture-burrito
4. project + resource + target_language objects and numeric tc_version
                                 -> translationcore
5. numeric package_version, string format, generator object
                                 -> translationstudio
otherwise                        -> unknown

Loaders still return an unknown manifest; relations are read from it
when present.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import yaml

from rcbundle.formats.candidates import first_matching
from rcbundle.sources.door43 import Door43Client, RepoContentEntry
from rcbundle.sources.transport import FileReader

logger = logging.getLogger(__name__)

# Remote candidates, in precedence order
MANIFEST_CANDIDATES = (
    "manifest.yaml",
    "manifest.yml",
    "manifest.json",
    "metadata.yaml",
    "metadata.yml",
    "metadata.json",
)

# Local cache candidates, in precedence order
LOCAL_MANIFEST_CANDIDATES = ("package.json", "manifest.yaml", "manifest.yml")


class ManifestFormat(Enum):
    """Recognized manifest schemas."""

    RESOURCE_CONTAINER = "resource-container"
    TCORE_RESOURCE_CONTAINER = "tcore-resource-container"
    TRANSLATIONCORE = "translationcore"
    TRANSLATIONSTUDIO = "translationstudio"
    SCRIPTURE_BURRITO = "scripture-burrito"
    UNKNOWN = "unknown"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _str_or_none(value: Any) -> str | None:
    """Non-empty string or None."""
    return value if isinstance(value, str) and value else None


def _mapping(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


FORMAT_RULES: list[tuple[ManifestFormat, Callable[[dict], bool]]] = [
    (
        ManifestFormat.RESOURCE_CONTAINER,
        lambda m: isinstance(m.get("dublin_core"), dict),
    ),
    (
        ManifestFormat.TCORE_RESOURCE_CONTAINER,
        lambda m: isinstance(m.get("resource_container"), dict),
    ),
    (
        ManifestFormat.SCRIPTURE_BURRITO,
        lambda m: isinstance(m.get("meta"), dict)
        and m["meta"].get("format") == "scripture burrito",
    ),
    (
        ManifestFormat.TRANSLATIONCORE,
        lambda m: isinstance(m.get("project"), dict)
        and isinstance(m.get("resource"), dict)
        and isinstance(m.get("target_language"), dict)
        and _is_number(m.get("tc_version")),
    ),
    (
        ManifestFormat.TRANSLATIONSTUDIO,
        lambda m: _is_number(m.get("package_version"))
        and isinstance(m.get("format"), str)
        and isinstance(m.get("generator"), dict),
    ),
]


def detect_manifest_format(doc: Any) -> ManifestFormat:
    """Classify a decoded manifest document."""
    if not isinstance(doc, dict):
        return ManifestFormat.UNKNOWN
    rule = first_matching(FORMAT_RULES, lambda r: r[1](doc))
    return rule[0] if rule else ManifestFormat.UNKNOWN


@dataclass(frozen=True)
class ManifestSummary:
    """Format-independent manifest fields."""

    identifier: str | None = None
    language: str | None = None
    subject: str | None = None
    version: str | None = None
    relations: tuple[str, ...] = ()


@dataclass(frozen=True)
class ManifestProject:
    """A declared project (book or article root) of a manifest."""

    identifier: str | None
    path: str


@dataclass(frozen=True)
class DetectedManifest:
    """A parsed manifest file with its detected format."""

    path: str
    raw: str
    parsed: dict = field(default_factory=dict)
    format: ManifestFormat = ManifestFormat.UNKNOWN

    def summary(self) -> ManifestSummary:
        return summarize_manifest(self)

    def projects(self) -> list[ManifestProject]:
        return list_manifest_projects(self)


def parse_manifest_text(raw: str, file_name: str) -> dict | None:
    """Decode manifest text; JSON first for .json files, then YAML.

    Returns:
        Mapping, or None when neither parser yields an object
    """
    if file_name.lower().endswith(".json"):
        try:
            parsed = json.loads(raw)
            return parsed if isinstance(parsed, dict) else None
        except ValueError:
            pass  # fall back to YAML

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        logger.debug(f"Unparsable manifest {file_name}: {e}")
        return None
    return parsed if isinstance(parsed, dict) else None


def _detect(path: str, raw: str) -> DetectedManifest | None:
    parsed = parse_manifest_text(raw, path)
    if parsed is None:
        return None
    return DetectedManifest(
        path=path, raw=raw, parsed=parsed, format=detect_manifest_format(parsed)
    )


def pick_candidate_file_names(entries: list[RepoContentEntry]) -> list[str]:
    """Manifest candidates present in a root listing, in precedence order.

    When the listing holds none of them (or is empty), every candidate is
    tried.
    """
    present = {e.name for e in entries if e.is_file and e.name}
    ordered = [name for name in MANIFEST_CANDIDATES if name in present]
    return ordered or list(MANIFEST_CANDIDATES)


def _choose(detected: list[DetectedManifest | None]) -> DetectedManifest | None:
    parsed = [m for m in detected if m is not None]
    return first_matching(
        parsed, lambda m: m.format is not ManifestFormat.UNKNOWN
    ) or first_matching(parsed)


async def load_repository_manifest(
    client: Door43Client,
    owner: str,
    repo: str,
    ref: str | None = None,
) -> DetectedManifest | None:
    """Load and classify the manifest of a remote repository.

    Args:
        client: Content service client
        owner: Repository owner
        repo: Repository name
        ref: Branch or tag (service default when None)

    Returns:
        First candidate with a recognized format, else the first candidate
        that parsed at all, else None
    """
    root_entries = await client.get_repository_contents(owner, repo, ref=ref)
    candidates = pick_candidate_file_names(root_entries)

    async def fetch(name: str) -> DetectedManifest | None:
        entry = await client.get_repository_file(owner, repo, name, ref=ref)
        if entry is None:
            return None
        raw = entry.decoded_content()
        if not raw:
            return None
        return _detect(entry.path or name, raw)

    detected = await asyncio.gather(*(fetch(name) for name in candidates))
    manifest = _choose(list(detected))
    if manifest is None:
        logger.debug(f"No usable manifest in {owner}/{repo}")
    else:
        logger.debug(
            f"Manifest {manifest.path} ({manifest.format.value}) for {owner}/{repo}"
        )
    return manifest


async def read_container_manifest(
    reader: FileReader, container_path: Path
) -> DetectedManifest | None:
    """Read the manifest of a local resource container.

    Tries package.json, manifest.yaml, manifest.yml in that order; the
    first one that parses wins.
    """
    container_path = Path(container_path)

    async def read(name: str) -> DetectedManifest | None:
        raw = await reader.read_text(container_path / name)
        if not raw:
            return None
        return _detect(name, raw)

    detected = await asyncio.gather(*(read(n) for n in LOCAL_MANIFEST_CANDIDATES))
    return first_matching(m for m in detected if m is not None)


def summarize_manifest(manifest: DetectedManifest | None) -> ManifestSummary:
    """Normalize identifier, language, subject, version and relations."""
    if manifest is None:
        return ManifestSummary()

    parsed = manifest.parsed
    dublin_core = _mapping(parsed.get("dublin_core"))
    resource = _mapping(parsed.get("resource"))
    target_language = _mapping(parsed.get("target_language"))
    dublin_language = _mapping(dublin_core.get("language"))

    relations_raw = dublin_core.get("relation")
    relations = (
        tuple(r for r in relations_raw if isinstance(r, str))
        if isinstance(relations_raw, list)
        else ()
    )

    return ManifestSummary(
        identifier=_str_or_none(dublin_core.get("identifier"))
        or _str_or_none(resource.get("id")),
        language=_str_or_none(dublin_language.get("identifier"))
        or _str_or_none(target_language.get("id")),
        subject=dublin_core.get("subject")
        if isinstance(dublin_core.get("subject"), str)
        else None,
        version=_str_or_none(dublin_core.get("version"))
        or _str_or_none(resource.get("version")),
        relations=relations,
    )


def list_manifest_projects(manifest: DetectedManifest | None) -> list[ManifestProject]:
    """Declared projects of a manifest.

    Resource containers and translationStudio packages list `projects`
    with identifier/path; Scripture Burrito lists `ingredients` keyed by
    path with a book scope.
    """
    if manifest is None:
        return []
    parsed = manifest.parsed
    projects: list[ManifestProject] = []

    raw_projects = parsed.get("projects")
    if isinstance(raw_projects, list):
        for item in raw_projects:
            if not isinstance(item, dict) or not isinstance(item.get("path"), str):
                continue
            identifier = item.get("identifier")
            projects.append(
                ManifestProject(
                    identifier=identifier if isinstance(identifier, str) else None,
                    path=item["path"],
                )
            )

    ingredients = parsed.get("ingredients")
    if not projects and isinstance(ingredients, dict):
        for path, ingredient in ingredients.items():
            if not isinstance(path, str):
                continue
            scope = _mapping(_mapping(ingredient).get("scope"))
            book = next((k for k in scope if isinstance(k, str)), None)
            projects.append(
                ManifestProject(identifier=book.lower() if book else None, path=path)
            )

    return projects
