"""Resource sources: the content service, the local cache, and what links them.

- transport.py: HTTP and filesystem collaborators
- door43.py: content service API client
- manifest.py: manifest candidates and format detection
- catalog.py: ResourceDescriptor discovery (catalog search, cache scan)
- resolver.py: relation resolution and dependency graph
- selector.py: book file selection
- containers.py: uniform file access to remote and local packages
"""

from rcbundle.sources.catalog import (
    LocalLocator,
    RemoteLocator,
    ResourceDescriptor,
    list_cached,
    list_catalog_resources,
)
from rcbundle.sources.door43 import CatalogSearchParams, Door43Client
from rcbundle.sources.manifest import DetectedManifest, ManifestFormat
from rcbundle.sources.resolver import (
    DependencyGraph,
    build_dependency_graph,
    find_related_resources,
)
from rcbundle.sources.transport import HttpTransport, LocalFileReader

__all__ = [
    "LocalLocator",
    "RemoteLocator",
    "ResourceDescriptor",
    "list_cached",
    "list_catalog_resources",
    "CatalogSearchParams",
    "Door43Client",
    "DetectedManifest",
    "ManifestFormat",
    "DependencyGraph",
    "build_dependency_graph",
    "find_related_resources",
    "HttpTransport",
    "LocalFileReader",
]
