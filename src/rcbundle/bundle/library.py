"""ResourceLibrary: the public entry point.

Owns the transport, content service client, file reader, bundle loader
and support bundle cache for one session. CLI commands and API routes
each open one library and go through it.

Usage:
    async with ResourceLibrary(Settings.from_env()) as library:
        cached = await library.list_cached()
        bundle = await library.load_support_bundle(cached[0], cached)
"""

from __future__ import annotations

import logging

from rcbundle.bundle.cache import SupportBundleCache, cache_key
from rcbundle.bundle.loader import BundleLoader, SourceText, SupportBundle
from rcbundle.config import Settings
from rcbundle.formats.candidates import first_matching
from rcbundle.sources.catalog import (
    ResourceDescriptor,
    list_cached,
    list_catalog_resources,
)
from rcbundle.sources.door43 import CatalogSearchParams, Door43Client
from rcbundle.sources.resolver import DependencyGraph, build_dependency_graph
from rcbundle.sources.transport import FileReader, HttpTransport, LocalFileReader, Transport

logger = logging.getLogger(__name__)

SOURCES = ("cached", "catalog")


def find_resource(
    resources: list[ResourceDescriptor], identifier: str
) -> ResourceDescriptor | None:
    """Look a resource up by key ("en/ult"), id, or repo name (case-insensitive)."""
    needle = identifier.strip().lower()
    return first_matching(
        resources,
        lambda r: needle in {(r.key or "").lower(), r.id.lower(), (r.repo or "").lower()},
    )


class ResourceLibrary:
    """Discovery, resolution and loading over one remote and one local source."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: Transport | None = None,
        reader: FileReader | None = None,
    ):
        """Initialize library.

        Args:
            settings: Configuration (Settings.from_env() when omitted)
            transport: HTTP transport (an owned HttpTransport when omitted)
            reader: File reader (LocalFileReader when omitted)
        """
        self.settings = settings or Settings.from_env()
        self._owns_transport = transport is None
        self.transport = transport or HttpTransport(
            timeout=self.settings.request_timeout
        )
        self.reader = reader or LocalFileReader()
        self.client = Door43Client(self.transport, self.settings.base_url)
        self.loader = BundleLoader(self.client, self.reader, self.settings)
        self.bundles = SupportBundleCache()

    async def __aenter__(self) -> "ResourceLibrary":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_transport and isinstance(self.transport, HttpTransport):
            await self.transport.aclose()

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def list_cached(self) -> list[ResourceDescriptor]:
        """Resources in the local cache, sorted by name."""
        return await list_cached(self.reader, self.settings.cache_root)

    async def list_catalog_resources(
        self,
        filters: CatalogSearchParams | None = None,
        include_manifest: bool = True,
    ) -> list[ResourceDescriptor]:
        """Resources from a catalog search, sorted by name."""
        filters = filters or CatalogSearchParams(stage=self.settings.default_stage)
        return await list_catalog_resources(self.client, filters, include_manifest)

    async def list_subjects(self) -> list[str]:
        return await self.client.list_subjects()

    async def list_owners(self) -> list[str]:
        return await self.client.list_owners()

    async def list_languages(self) -> list[str]:
        return await self.client.list_languages()

    async def list_resources(
        self,
        source: str = "cached",
        filters: CatalogSearchParams | None = None,
    ) -> list[ResourceDescriptor]:
        """Resources from the named source ("cached" or "catalog")."""
        if source == "cached":
            return await self.list_cached()
        if source == "catalog":
            return await self.list_catalog_resources(filters)
        raise ValueError(f"Unknown resource source: {source!r}")

    def dependency_graph(self, resources: list[ResourceDescriptor]) -> DependencyGraph:
        return build_dependency_graph(resources)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_support_bundle(
        self,
        primary: ResourceDescriptor,
        pool: list[ResourceDescriptor],
        refresh: bool = False,
    ) -> SupportBundle:
        """Support bundle for a primary resource, served from cache.

        Args:
            primary: Resource whose relations declare its helps
            pool: Candidate packages
            refresh: Reload even if a cached bundle exists
        """
        if refresh:
            self.bundles.invalidate(cache_key(primary))
        else:
            cached = self.bundles.get(primary)
            if cached is not None:
                logger.debug(f"Bundle cache hit for {cache_key(primary)}")
                return cached

        bundle = await self.loader.load_support_bundle(primary, pool)
        self.bundles.put(bundle)
        return bundle

    async def load_catalog_source_text(
        self, resource: ResourceDescriptor, book_id: str | None = None
    ) -> SourceText:
        return await self.loader.load_catalog_source_text(resource, book_id)

    async def load_cached_source_text(
        self, resource: ResourceDescriptor, book_id: str | None = None
    ) -> SourceText:
        return await self.loader.load_cached_source_text(resource, book_id)

    async def load_source_text(
        self, resource: ResourceDescriptor, book_id: str | None = None
    ) -> SourceText:
        """Source text of either kind of resource."""
        if resource.is_remote:
            return await self.load_catalog_source_text(resource, book_id)
        return await self.load_cached_source_text(resource, book_id)

    async def load_book(
        self,
        resource: ResourceDescriptor,
        pool: list[ResourceDescriptor],
        book_id: str | None = None,
    ) -> tuple[SourceText, SupportBundle]:
        """Source text plus support bundle (bundle cached like load_support_bundle)."""
        cached = self.bundles.get(resource)
        if cached is not None:
            source = await self.loader.load_source_text(resource, book_id)
            return source, cached

        source, bundle = await self.loader.load_book(resource, pool, book_id)
        self.bundles.put(bundle)
        return source, bundle
