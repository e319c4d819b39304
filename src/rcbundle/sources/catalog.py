"""Resource discovery from the remote catalog and the local cache.

Both sources produce the same ResourceDescriptor, differing only in the
locator: RemoteLocator (repo + ref on the content service) or
LocalLocator (container directory in the cache).

Design assumptions:
- The local cache root holds one resource container per subdirectory
  (RCBUNDLE_CACHE_ROOT override, see config.Settings)
- Catalog entries are frequently incomplete; entries without a derivable
  owner and repo are dropped silently
- Manifests are the authority for relations and version; catalog fields
  are fallbacks
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from rcbundle.formats.links import to_resource_key
from rcbundle.sources.door43 import CatalogSearchParams, Door43Client
from rcbundle.sources.manifest import (
    DetectedManifest,
    ManifestFormat,
    load_repository_manifest,
    read_container_manifest,
    summarize_manifest,
)
from rcbundle.sources.transport import FileReader

logger = logging.getLogger(__name__)

UNKNOWN_OWNER = "Unknown"
UNKNOWN_VERSION = "unknown"


@dataclass(frozen=True)
class RemoteLocator:
    """Location of a package on the content service."""

    repo: str
    ref: str = "master"


@dataclass(frozen=True)
class LocalLocator:
    """Location of a package in the local cache."""

    container_path: Path


Locator = Union[RemoteLocator, LocalLocator]


@dataclass(frozen=True)
class ResourceDescriptor:
    """Uniform identity of a discoverable resource package.

    Two descriptors denote the same logical resource when their `key`
    (language/identifier) matches; owner and version are not part of
    identity.
    """

    id: str
    name: str
    owner: str
    version: str
    locator: Locator
    language: str | None = None
    subject: str | None = None
    relations: tuple[str, ...] = ()
    manifest_format: ManifestFormat | None = None
    project: str | None = None
    stage: str | None = None

    @property
    def key(self) -> str | None:
        return to_resource_key(self)

    @property
    def is_remote(self) -> bool:
        return isinstance(self.locator, RemoteLocator)

    @property
    def repo(self) -> str | None:
        return self.locator.repo if isinstance(self.locator, RemoteLocator) else None

    @property
    def ref(self) -> str | None:
        return self.locator.ref if isinstance(self.locator, RemoteLocator) else None

    @property
    def container_path(self) -> Path | None:
        if isinstance(self.locator, LocalLocator):
            return self.locator.container_path
        return None

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        result = {
            "id": self.id,
            "key": self.key,
            "name": self.name,
            "owner": self.owner,
            "version": self.version,
            "language": self.language,
            "subject": self.subject,
            "relations": list(self.relations),
            "manifest_format": self.manifest_format.value
            if self.manifest_format
            else None,
            "project": self.project,
            "stage": self.stage,
        }
        if isinstance(self.locator, RemoteLocator):
            result["repo"] = self.locator.repo
            result["ref"] = self.locator.ref
        else:
            result["container_path"] = str(self.locator.container_path)
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "ResourceDescriptor":
        """Create from a to_dict()-shaped dict.

        A container_path makes the descriptor local; otherwise repo
        (defaulting to id) makes it remote.
        """
        if data.get("container_path"):
            locator: Locator = LocalLocator(Path(data["container_path"]))
        else:
            locator = RemoteLocator(
                repo=data.get("repo") or data["id"], ref=data.get("ref") or "master"
            )

        manifest_format = data.get("manifest_format")
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            owner=data.get("owner") or UNKNOWN_OWNER,
            version=data.get("version") or UNKNOWN_VERSION,
            locator=locator,
            language=data.get("language"),
            subject=data.get("subject"),
            relations=tuple(data.get("relations") or ()),
            manifest_format=ManifestFormat(manifest_format)
            if manifest_format
            else None,
            project=data.get("project"),
            stage=data.get("stage"),
        )


def _first_string(*values: Any) -> str | None:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _mapping(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _sorted_by_name(resources: list[ResourceDescriptor]) -> list[ResourceDescriptor]:
    return sorted(resources, key=lambda r: r.name.casefold())


# ============================================================================
# Local cache
# ============================================================================


def parse_owner(parsed: dict) -> str:
    """Owner from dublin_core.creator (list joined, string, else Unknown)."""
    creator = _mapping(parsed.get("dublin_core")).get("creator")
    if isinstance(creator, list):
        joined = ", ".join(str(c) for c in creator if c)
        return joined or UNKNOWN_OWNER
    if isinstance(creator, str) and creator.strip():
        return creator
    return UNKNOWN_OWNER


def descriptor_from_local_manifest(
    manifest: DetectedManifest, container_path: Path
) -> ResourceDescriptor:
    """Build a local ResourceDescriptor from a container manifest."""
    parsed = manifest.parsed
    resource = _mapping(parsed.get("resource"))
    dublin_core = _mapping(parsed.get("dublin_core"))
    dir_name = container_path.name

    identifier = dublin_core.get("identifier")
    project = None
    if isinstance(identifier, str) and "_" in identifier:
        project = identifier.split("_", 1)[1]

    return ResourceDescriptor(
        id=_first_string(resource.get("id"), resource.get("slug")) or dir_name,
        name=_first_string(resource.get("name"), parsed.get("name"), identifier)
        or dir_name,
        owner=parse_owner(parsed),
        version=_first_string(
            resource.get("version"), parsed.get("version"), dublin_core.get("version")
        )
        or UNKNOWN_VERSION,
        locator=LocalLocator(container_path),
        language=_first_string(_mapping(dublin_core.get("language")).get("identifier")),
        subject=_first_string(dublin_core.get("subject")),
        relations=summarize_manifest(manifest).relations,
        manifest_format=manifest.format,
        project=project,
    )


async def list_cached(reader: FileReader, cache_root: Path) -> list[ResourceDescriptor]:
    """Scan the local cache for resource containers.

    Args:
        reader: File reader collaborator
        cache_root: Directory holding one container per subdirectory

    Returns:
        Descriptors sorted by name; directories without a parsable
        manifest are skipped
    """
    cache_root = Path(cache_root)
    entries = await reader.list_dir(cache_root)

    async def scan(name: str) -> ResourceDescriptor | None:
        container_path = cache_root / name
        manifest = await read_container_manifest(reader, container_path)
        if manifest is None:
            logger.debug(f"Skipping {container_path}: no parsable manifest")
            return None
        return descriptor_from_local_manifest(manifest, container_path)

    rows = await asyncio.gather(*(scan(e.name) for e in entries if e.is_dir))
    resources = [r for r in rows if r is not None]
    logger.info(f"Found {len(resources)} cached resources under {cache_root}")
    return _sorted_by_name(resources)


# ============================================================================
# Remote catalog
# ============================================================================


def parse_repo_identity(entry: dict) -> tuple[str, str] | None:
    """Derive (owner, repo) from a catalog entry.

    Prefers a full_name of form owner/repo, then owner username plus the
    repo name fields.
    """
    repo_record = _mapping(entry.get("repo"))
    owner_record = _mapping(entry.get("owner"))
    repo_owner_record = _mapping(repo_record.get("owner"))

    full_name = _first_string(repo_record.get("full_name"), entry.get("full_name"))
    if full_name and "/" in full_name:
        owner, _, repo = full_name.partition("/")
        repo = repo.split("/", 1)[0]
        if owner and repo:
            return owner, repo

    owner = _first_string(
        owner_record.get("username"),
        repo_owner_record.get("username"),
        entry.get("owner"),
    )
    repo = _first_string(
        repo_record.get("name"), entry.get("name"), entry.get("repo_name")
    )
    if not owner or not repo:
        return None
    return owner, repo


def parse_catalog_language(entry: dict) -> str | None:
    return _first_string(
        entry.get("lang"),
        entry.get("language"),
        _mapping(entry.get("language")).get("identifier"),
    )


def parse_catalog_version(entry: dict) -> str:
    release = _mapping(entry.get("release"))
    return _first_string(release.get("tag_name"), release.get("name")) or UNKNOWN_VERSION


async def descriptor_from_catalog_entry(
    client: Door43Client,
    entry: dict,
    include_manifest: bool = True,
) -> ResourceDescriptor | None:
    """Build a remote ResourceDescriptor from a catalog entry.

    Returns:
        Descriptor, or None when the entry lacks owner or repo
    """
    identity = parse_repo_identity(entry)
    if identity is None:
        return None
    owner, repo = identity

    repo_record = _mapping(entry.get("repo"))
    ref = _first_string(repo_record.get("default_branch")) or "master"
    version = parse_catalog_version(entry)
    relations: tuple[str, ...] = ()
    manifest_format = None

    if include_manifest:
        manifest = await load_repository_manifest(client, owner, repo)
        summary = summarize_manifest(manifest)
        relations = summary.relations
        manifest_format = manifest.format if manifest else None
        if summary.version and summary.version != UNKNOWN_VERSION:
            version = summary.version

    return ResourceDescriptor(
        id=repo,
        name=_first_string(entry.get("title"), entry.get("name"), repo) or repo,
        owner=owner,
        version=version,
        locator=RemoteLocator(repo=repo, ref=ref),
        language=parse_catalog_language(entry),
        subject=_first_string(entry.get("subject")),
        relations=relations,
        manifest_format=manifest_format,
        stage=_first_string(entry.get("stage"), entry.get("released")),
    )


async def list_catalog_resources(
    client: Door43Client,
    filters: CatalogSearchParams | None = None,
    include_manifest: bool = True,
) -> list[ResourceDescriptor]:
    """Search the catalog and describe every usable entry.

    Args:
        client: Content service client
        filters: Search filters (stage defaults to "prod")
        include_manifest: Fetch each manifest for relations and version

    Returns:
        Descriptors sorted by name
    """
    entries = await client.catalog_search(filters)
    rows = await asyncio.gather(
        *(descriptor_from_catalog_entry(client, e, include_manifest) for e in entries)
    )
    resources = [r for r in rows if r is not None]
    dropped = len(entries) - len(resources)
    if dropped:
        logger.debug(f"Dropped {dropped} catalog entries without owner/repo")
    logger.info(f"Catalog search returned {len(resources)} resources")
    return _sorted_by_name(resources)
