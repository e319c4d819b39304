"""Support bundle and source text loading.

Two orchestration operations sit on top of the format, manifest,
resolver and selector layers:

- load_support_bundle(primary, pool): resolve the primary resource's
  relations one hop, pick its TN, TWL and TW packages, and load all
  three concurrently. A missing or unresolvable slot is None, never an
  error; unresolved relations are reported on the bundle.
- load_*_source_text(resource, book_id): pick the book file from the
  manifest's declared projects (or from a bounded directory listing) and
  read it. Failing to find a usable file is the one error raised here.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable

from rcbundle.config import Settings
from rcbundle.formats.candidates import first_matching
from rcbundle.formats.links import RcLink
from rcbundle.parsers.articles import TwArticle, parse_tw_article
from rcbundle.parsers.tables import (
    RowT,
    TnRow,
    TwlRow,
    chapters_covered,
    parse_tn_tsv,
    parse_twl_tsv,
    rows_for_verse,
)
from rcbundle.parsers.usfm import SourceVerse, extract_book_id, parse_source_verses
from rcbundle.sources.catalog import LocalLocator, RemoteLocator, ResourceDescriptor
from rcbundle.sources.containers import ResourceContainer, open_container
from rcbundle.sources.door43 import Door43Client
from rcbundle.sources.manifest import ManifestProject
from rcbundle.sources.resolver import find_related_resources
from rcbundle.sources.selector import (
    ARTICLE_EXTENSIONS,
    SOURCE_TEXT_EXTENSIONS,
    TSV_EXTENSIONS,
    BookCandidate,
    basename_lower,
    derive_project_id,
    has_extension,
    pick_candidate_path,
    sanitize_relative_path,
)
from rcbundle.sources.transport import FileReader

logger = logging.getLogger(__name__)

DEFAULT_ARTICLE_ROOT = "bible"
ARTICLE_PATH_PATTERN = re.compile(
    r"(?:^|/)bible/([^/]+)/([^/]+)\.md$", re.IGNORECASE
)


class BundleError(Exception):
    """Base class for loader errors."""


class SourceTextNotFoundError(BundleError):
    """Raised when no usable source text file exists for a resource."""

    def __init__(self, resource: ResourceDescriptor, message: str):
        self.resource = resource
        super().__init__(message)


# ============================================================================
# Results
# ============================================================================


@dataclass(frozen=True)
class ParsedBookRows:
    """Rows parsed from one TSV file."""

    identifier: str
    path: str
    rows: tuple = ()


@dataclass(frozen=True)
class ParsedTwArticle:
    """One word article with its bible/<category>/<slug>.md location."""

    path: str
    article: TwArticle
    category: str | None = None
    slug: str | None = None


@dataclass(frozen=True)
class LoadedResourceRows:
    """All TSV files of one TN or TWL resource."""

    resource: ResourceDescriptor
    files: tuple[ParsedBookRows, ...] = ()

    @property
    def rows(self) -> list:
        """Rows of every file, concatenated in file order."""
        return [row for f in self.files for row in f.rows]

    def for_book(self, book_id: str) -> list:
        book_id = book_id.strip().lower()
        return [row for f in self.files if f.identifier == book_id for row in f.rows]


@dataclass(frozen=True)
class LoadedTwResource:
    """All articles of one TW resource."""

    resource: ResourceDescriptor
    files: tuple[ParsedTwArticle, ...] = ()

    def find(self, category: str | None, slug: str) -> ParsedTwArticle | None:
        slug = slug.lower()
        return first_matching(
            self.files,
            lambda f: f.slug == slug and (category is None or f.category == category),
        )


@dataclass(frozen=True)
class SupportBundle:
    """Notes, word links and word articles supporting a primary resource."""

    primary: ResourceDescriptor
    tn: LoadedResourceRows | None = None
    twl: LoadedResourceRows | None = None
    tw: LoadedTwResource | None = None
    unresolved_relations: tuple[str, ...] = ()

    def notes_for(self, chapter: int, verse: int) -> list[TnRow]:
        return rows_for_verse(self.tn.rows, chapter, verse) if self.tn else []

    def links_for(self, chapter: int, verse: int) -> list[TwlRow]:
        return rows_for_verse(self.twl.rows, chapter, verse) if self.twl else []

    def article_for(self, link: RcLink | None) -> ParsedTwArticle | None:
        """Resolve a TW rc link (".../bible/<category>/<slug>") to its article."""
        if link is None or self.tw is None:
            return None
        parts = link.path.split("/")
        category = parts[-2].lower() if len(parts) >= 2 else None
        return self.tw.find(category, link.slug)

    def to_dict(self) -> dict:
        """Serialize a summary (resources, files and counts) to a dictionary."""

        def rows_summary(loaded: LoadedResourceRows | None) -> dict | None:
            if loaded is None:
                return None
            return {
                "resource": loaded.resource.to_dict(),
                "files": [
                    {"identifier": f.identifier, "path": f.path, "rows": len(f.rows)}
                    for f in loaded.files
                ],
                "row_count": sum(len(f.rows) for f in loaded.files),
                "chapters": chapters_covered(loaded.rows),
            }

        return {
            "primary": self.primary.to_dict(),
            "tn": rows_summary(self.tn),
            "twl": rows_summary(self.twl),
            "tw": None
            if self.tw is None
            else {
                "resource": self.tw.resource.to_dict(),
                "article_count": len(self.tw.files),
            },
            "unresolved_relations": list(self.unresolved_relations),
        }


@dataclass(frozen=True)
class SourceText:
    """A book's raw source text."""

    resource: ResourceDescriptor
    book_id: str
    path: str
    text: str

    @property
    def declared_book_id(self) -> str | None:
        """Book id declared inside the file (\\id marker)."""
        return extract_book_id(self.text)

    def verses(self) -> list[SourceVerse]:
        return parse_source_verses(self.text)

    def to_dict(self, include_text: bool = True) -> dict:
        result = {
            "resource": self.resource.to_dict(),
            "book_id": self.book_id,
            "path": self.path,
            "declared_book_id": self.declared_book_id,
        }
        if include_text:
            result["text"] = self.text
        return result


# ============================================================================
# Helpers
# ============================================================================


def _project_identifier(project: ManifestProject) -> str:
    """Declared identifier (lowercased), else derived from the file name."""
    identifier = (project.identifier or "").strip().lower()
    return identifier or derive_project_id(project.path, "unknown")


def _tsv_candidates(
    projects: list[ManifestProject], prefix: str
) -> list[tuple[str, str]]:
    """Declared TSV files as (identifier, path), prefix-matching files first.

    Files whose basename starts with prefix are preferred; when none
    does, every declared TSV is used.
    """
    declared = [
        (_project_identifier(p), sanitize_relative_path(p.path)) for p in projects
    ]
    tsv = [(i, p) for i, p in declared if has_extension(p, TSV_EXTENSIONS)]
    preferred = [(i, p) for i, p in tsv if basename_lower(p).startswith(prefix)]
    return preferred or tsv


def pick_by_suffix(
    resources: list[ResourceDescriptor], suffix: str
) -> ResourceDescriptor | None:
    """First resource whose id or repo equals suffix or ends with _suffix."""
    needle = f"_{suffix}"

    def matches(resource: ResourceDescriptor) -> bool:
        names = [resource.id.lower()]
        if resource.repo:
            names.append(resource.repo.lower())
        return any(n == suffix or n.endswith(needle) for n in names)

    return first_matching(resources, matches)


async def _maybe(
    resource: ResourceDescriptor | None,
    load: Callable[[ResourceDescriptor], Awaitable],
):
    return await load(resource) if resource is not None else None


# ============================================================================
# Loader
# ============================================================================


class BundleLoader:
    """Loads support bundles and book source text."""

    def __init__(
        self,
        client: Door43Client,
        reader: FileReader,
        settings: Settings | None = None,
    ):
        """Initialize loader.

        Args:
            client: Content service client (remote resources)
            reader: File reader (cached resources)
            settings: Discovery bounds (defaults when omitted)
        """
        self.client = client
        self.reader = reader
        self.settings = settings or Settings()

    def container_for(self, resource: ResourceDescriptor) -> ResourceContainer:
        return open_container(resource, self.client, self.reader)

    def _discovery_depth(self, resource: ResourceDescriptor) -> int:
        if resource.is_remote:
            return self.settings.source_discovery_depth
        return self.settings.local_discovery_depth

    # ------------------------------------------------------------------
    # TN / TWL / TW
    # ------------------------------------------------------------------

    async def _load_rows(
        self,
        resource: ResourceDescriptor,
        prefix: str,
        parse: Callable[[str], list[RowT]],
    ) -> LoadedResourceRows:
        container = self.container_for(resource)
        manifest = await container.load_manifest()
        candidates = _tsv_candidates(manifest.projects() if manifest else [], prefix)

        texts = await asyncio.gather(*(container.read_text(p) for _, p in candidates))
        files = tuple(
            ParsedBookRows(identifier=identifier, path=path, rows=tuple(parse(text)))
            for (identifier, path), text in zip(candidates, texts)
            if text
        )
        logger.info(
            f"Loaded {sum(len(f.rows) for f in files)} rows from "
            f"{len(files)} files of {container.label}"
        )
        return LoadedResourceRows(resource=resource, files=files)

    async def load_tn(self, resource: ResourceDescriptor) -> LoadedResourceRows:
        """Load every declared TN TSV file of a resource."""
        return await self._load_rows(resource, "tn_", parse_tn_tsv)

    async def load_twl(self, resource: ResourceDescriptor) -> LoadedResourceRows:
        """Load every declared TWL TSV file of a resource."""
        return await self._load_rows(resource, "twl_", parse_twl_tsv)

    async def load_tw(self, resource: ResourceDescriptor) -> LoadedTwResource:
        """Load word articles from declared projects (default root "bible").

        Declared .md projects are read directly; other project roots are
        listed recursively for .md files.
        """
        container = self.container_for(resource)
        manifest = await container.load_manifest()
        roots = [
            sanitize_relative_path(p.path)
            for p in (manifest.projects() if manifest else [])
        ]
        roots = [r for r in roots if r] or [DEFAULT_ARTICLE_ROOT]

        paths: set[str] = set()
        for root in roots:
            if has_extension(root, ARTICLE_EXTENSIONS):
                paths.add(root)
                continue
            listed = await container.list_files(
                root, max_depth=self.settings.article_discovery_depth
            )
            paths.update(p for p in listed if has_extension(p, ARTICLE_EXTENSIONS))

        ordered = sorted(sanitize_relative_path(p) for p in paths)
        texts = await asyncio.gather(*(container.read_text(p) for p in ordered))

        files = []
        for path, text in zip(ordered, texts):
            if not text:
                continue
            match = ARTICLE_PATH_PATTERN.search(path)
            files.append(
                ParsedTwArticle(
                    path=path,
                    article=parse_tw_article(text),
                    category=match.group(1).lower() if match else None,
                    slug=match.group(2).lower() if match else None,
                )
            )
        logger.info(f"Loaded {len(files)} articles from {container.label}")
        return LoadedTwResource(resource=resource, files=tuple(files))

    async def load_support_bundle(
        self,
        primary: ResourceDescriptor,
        pool: list[ResourceDescriptor],
    ) -> SupportBundle:
        """Load the TN/TWL/TW support bundle of a primary resource.

        Args:
            primary: Resource whose relations declare its helps
            pool: Candidate packages to resolve relations against

        Returns:
            SupportBundle; slots without a resolved resource are None
        """
        related = find_related_resources(primary, pool)
        tn_resource = pick_by_suffix(related.resolved, "tn")
        twl_resource = pick_by_suffix(related.resolved, "twl")
        tw_resource = pick_by_suffix(related.resolved, "tw")

        tn, twl, tw = await asyncio.gather(
            _maybe(tn_resource, self.load_tn),
            _maybe(twl_resource, self.load_twl),
            _maybe(tw_resource, self.load_tw),
        )
        return SupportBundle(
            primary=primary,
            tn=tn,
            twl=twl,
            tw=tw,
            unresolved_relations=tuple(related.unresolved),
        )

    # ------------------------------------------------------------------
    # Source text
    # ------------------------------------------------------------------

    async def _select_source_file(
        self,
        resource: ResourceDescriptor,
        container: ResourceContainer,
        book_id: str | None,
    ) -> BookCandidate | None:
        manifest = await container.load_manifest()
        explicit_ids: dict[str, str | None] = {}
        for project in manifest.projects() if manifest else []:
            path = sanitize_relative_path(project.path)
            if has_extension(path, SOURCE_TEXT_EXTENSIONS):
                identifier = project.identifier
                explicit_ids[path] = identifier.strip().lower() if identifier else None

        candidate = pick_candidate_path(list(explicit_ids), explicit_ids, book_id)
        if candidate is not None:
            return candidate

        logger.debug(f"No declared source files in {container.label}; discovering")
        discovered = await container.list_files(
            "", max_depth=self._discovery_depth(resource)
        )
        source_files = [p for p in discovered if has_extension(p, SOURCE_TEXT_EXTENSIONS)]
        return pick_candidate_path(source_files, {}, book_id)

    async def load_source_text(
        self,
        resource: ResourceDescriptor,
        book_id: str | None = None,
    ) -> SourceText:
        """Load one book's source text from a remote or cached resource.

        Raises:
            SourceTextNotFoundError: No source file found, or it is unreadable
        """
        container = self.container_for(resource)
        candidate = await self._select_source_file(resource, container, book_id)
        if candidate is None:
            raise SourceTextNotFoundError(
                resource, f"No source USFM found in {container.label}."
            )

        text = await container.read_text(candidate.path)
        if not text:
            raise SourceTextNotFoundError(
                resource,
                f"Could not load source file {candidate.path} from {container.label}.",
            )
        logger.info(f"Loaded {candidate.book_id} from {container.label}/{candidate.path}")
        return SourceText(
            resource=resource, book_id=candidate.book_id, path=candidate.path, text=text
        )

    async def load_catalog_source_text(
        self, resource: ResourceDescriptor, book_id: str | None = None
    ) -> SourceText:
        """Load source text of a catalog (remote) resource."""
        if not isinstance(resource.locator, RemoteLocator):
            raise TypeError(f"{resource.id} is not a catalog resource")
        return await self.load_source_text(resource, book_id)

    async def load_cached_source_text(
        self, resource: ResourceDescriptor, book_id: str | None = None
    ) -> SourceText:
        """Load source text of a cached (local) resource."""
        if not isinstance(resource.locator, LocalLocator):
            raise TypeError(f"{resource.id} is not a cached resource")
        return await self.load_source_text(resource, book_id)

    async def load_book(
        self,
        resource: ResourceDescriptor,
        pool: list[ResourceDescriptor],
        book_id: str | None = None,
    ) -> tuple[SourceText, SupportBundle]:
        """Load a book's source text and its support bundle concurrently."""
        source, bundle = await asyncio.gather(
            self.load_source_text(resource, book_id),
            self.load_support_bundle(resource, pool),
        )
        return source, bundle
