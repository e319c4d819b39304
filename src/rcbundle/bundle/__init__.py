"""Support bundle and source text loading.

Modules:
- loader: BundleLoader, SupportBundle, SourceText
- cache: SupportBundleCache
- library: ResourceLibrary facade
"""

from rcbundle.bundle.cache import SupportBundleCache
from rcbundle.bundle.library import ResourceLibrary
from rcbundle.bundle.loader import (
    BundleError,
    BundleLoader,
    LoadedResourceRows,
    LoadedTwResource,
    ParsedBookRows,
    ParsedTwArticle,
    SourceText,
    SourceTextNotFoundError,
    SupportBundle,
)

__all__ = [
    "BundleError",
    "BundleLoader",
    "LoadedResourceRows",
    "LoadedTwResource",
    "ParsedBookRows",
    "ParsedTwArticle",
    "ResourceLibrary",
    "SourceText",
    "SourceTextNotFoundError",
    "SupportBundle",
    "SupportBundleCache",
]
