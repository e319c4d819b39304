"""In-memory support bundle cache.

Owned by a ResourceLibrary instance; there is no module-level cache.
Entries are keyed by the primary resource key (language/identifier), so
two packages of the same logical resource share one entry.
"""

from __future__ import annotations

import logging

from rcbundle.bundle.loader import SupportBundle
from rcbundle.sources.catalog import ResourceDescriptor

logger = logging.getLogger(__name__)


def cache_key(resource: ResourceDescriptor) -> str:
    """Resource key, or the raw id when no key is derivable."""
    return resource.key or resource.id


class SupportBundleCache:
    """Support bundles by primary resource key."""

    def __init__(self):
        self._entries: dict[str, SupportBundle] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, resource: ResourceDescriptor) -> bool:
        return cache_key(resource) in self._entries

    def get(self, resource: ResourceDescriptor) -> SupportBundle | None:
        return self._entries.get(cache_key(resource))

    def put(self, bundle: SupportBundle) -> None:
        self._entries[cache_key(bundle.primary)] = bundle

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if it existed."""
        removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug(f"Invalidated bundle cache entry {key}")
        return removed

    def clear(self) -> None:
        self._entries.clear()
