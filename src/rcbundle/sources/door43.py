"""Door43 content service API client.

Thin, typed wrappers over the Gitea-style endpoints the resolver needs:
catalog search and facet lists, repository contents listings, single
files (with base64 payload) and raw file text.

All methods return empty/None results when the transport does; catalog
responses are accepted either as bare arrays or wrapped in a
data/results/items/entries object.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode

from rcbundle.config import DEFAULT_BASE_URL
from rcbundle.sources.transport import Transport

logger = logging.getLogger(__name__)

ARRAY_RESPONSE_KEYS = ("data", "results", "items", "entries")


@dataclass(frozen=True)
class CatalogSearchParams:
    """Catalog search filters (blank filters are omitted)."""

    subject: str | None = None
    lang: str | None = None
    owner: str | None = None
    q: str | None = None
    stage: str = "prod"

    def to_query(self) -> dict[str, str]:
        query = {
            "subject": self.subject or "",
            "lang": self.lang or "",
            "owner": self.owner or "",
            "q": self.q or "",
            "stage": self.stage or "prod",
        }
        return {k: v for k, v in query.items() if v.strip()}


@dataclass(frozen=True)
class RepoContentEntry:
    """One entry of a repository contents listing or file response."""

    name: str
    path: str
    type: str
    sha: str | None = None
    size: int | None = None
    encoding: str | None = None
    content: str | None = None
    download_url: str | None = None

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"

    def decoded_content(self) -> str | None:
        """Return file content as text, decoding base64 when flagged."""
        if not isinstance(self.content, str):
            return None
        if self.encoding == "base64":
            try:
                return base64.b64decode(self.content).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError):
                logger.debug(f"Undecodable base64 content in {self.path}")
                return None
        return self.content

    @classmethod
    def from_dict(cls, data: Any) -> "RepoContentEntry | None":
        """Build from an API object; None when name/path/type are missing."""
        if not isinstance(data, dict):
            return None
        name, path, type_ = data.get("name"), data.get("path"), data.get("type")
        if not all(isinstance(v, str) for v in (name, path, type_)):
            return None

        def _str(key: str) -> str | None:
            value = data.get(key)
            return value if isinstance(value, str) else None

        size = data.get("size")
        return cls(
            name=name,
            path=path,
            type=type_,
            sha=_str("sha"),
            size=size if isinstance(size, int) else None,
            encoding=_str("encoding"),
            content=_str("content"),
            download_url=_str("download_url"),
        )


def normalize_array_response(data: Any) -> list:
    """Extract a list from a bare array or a wrapped response object."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ARRAY_RESPONSE_KEYS:
            child = data.get(key)
            if isinstance(child, list):
                return child
    return []


def _encode_path(rel_path: str) -> str:
    return "/".join(quote(part, safe="") for part in rel_path.split("/") if part)


class Door43Client:
    """Client for the Door43 (Gitea) content service."""

    def __init__(self, transport: Transport, base_url: str = DEFAULT_BASE_URL):
        self.transport = transport
        self.base_url = base_url.rstrip("/")

    def api_url(self, endpoint: str, query: dict[str, str] | None = None) -> str:
        """Build an absolute API URL, dropping blank query values."""
        path = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        url = f"{self.base_url}{path}"
        params = {k: v for k, v in (query or {}).items() if v and v.strip()}
        if params:
            url = f"{url}?{urlencode(params)}"
        return url

    def _contents_url(
        self, owner: str, repo: str, rel_path: str = "", ref: str | None = None
    ) -> str:
        endpoint = f"/api/v1/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/contents"
        encoded = _encode_path(rel_path)
        if encoded:
            endpoint = f"{endpoint}/{encoded}"
        return self.api_url(endpoint, {"ref": ref} if ref else None)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def catalog_search(
        self, params: CatalogSearchParams | None = None
    ) -> list[dict]:
        """Search the catalog; non-object entries are discarded."""
        params = params or CatalogSearchParams()
        url = self.api_url("/api/v1/catalog/search", params.to_query())
        data = await self.transport.fetch_json(url)
        return [e for e in normalize_array_response(data) if isinstance(e, dict)]

    async def _list_facet(self, endpoint: str, extract) -> list[str]:
        data = await self.transport.fetch_json(self.api_url(endpoint))
        values = set()
        for row in normalize_array_response(data):
            value = row if isinstance(row, str) else extract(row)
            if isinstance(value, str) and value:
                values.add(value)
        return sorted(values)

    async def list_subjects(self) -> list[str]:
        return await self._list_facet(
            "/api/v1/catalog/list/subjects",
            lambda row: row.get("subject") if isinstance(row, dict) else None,
        )

    async def list_owners(self) -> list[str]:
        def extract(row):
            if not isinstance(row, dict):
                return None
            owner = row.get("owner")
            if isinstance(owner, dict):
                return owner.get("username")
            return owner

        return await self._list_facet("/api/v1/catalog/list/owners", extract)

    async def list_languages(self) -> list[str]:
        def extract(row):
            if not isinstance(row, dict):
                return None
            language = row.get("language")
            if isinstance(language, dict):
                return language.get("identifier")
            return language if isinstance(language, str) else row.get("lang")

        return await self._list_facet("/api/v1/catalog/list/languages", extract)

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    async def get_repository_contents(
        self,
        owner: str,
        repo: str,
        rel_path: str = "",
        ref: str | None = None,
    ) -> list[RepoContentEntry]:
        """List a repository directory ([] when missing or not a directory)."""
        data = await self.transport.fetch_json(
            self._contents_url(owner, repo, rel_path, ref)
        )
        entries = []
        for item in normalize_array_response(data):
            entry = RepoContentEntry.from_dict(item)
            if entry is not None:
                entries.append(entry)
        return entries

    async def get_repository_file(
        self,
        owner: str,
        repo: str,
        rel_path: str,
        ref: str | None = None,
    ) -> RepoContentEntry | None:
        """Fetch a single file entry (with content) from the contents API."""
        data = await self.transport.fetch_json(
            self._contents_url(owner, repo, rel_path, ref)
        )
        if isinstance(data, list):
            return None
        return RepoContentEntry.from_dict(data)

    async def get_raw_file_text(
        self,
        owner: str,
        repo: str,
        rel_path: str,
        ref: str | None = None,
    ) -> str | None:
        """Fetch raw file text from the branch raw endpoint."""
        url = (
            f"{self.base_url}/{quote(owner, safe='')}/{quote(repo, safe='')}"
            f"/raw/branch/{quote(ref or 'master', safe='')}/{_encode_path(rel_path)}"
        )
        return await self.transport.fetch_text(url)
