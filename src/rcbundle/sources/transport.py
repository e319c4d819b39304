"""Collaborator interfaces for remote and local I/O.

The resolution core only needs two capabilities from its host:
- Transport: fetch text or JSON by URL
- FileReader: list a directory, read a text file

Default implementations are provided (httpx for HTTP, the local
filesystem for the cache), but anything satisfying the protocols works,
which is how tests substitute fixtures.

HTTP failures never raise into the core: a non-2xx status, a connection
error or an undecodable JSON body all come back as None.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "rcbundle/0.1"


@runtime_checkable
class Transport(Protocol):
    """Fetch text or decoded JSON by URL."""

    async def fetch_text(self, url: str) -> str | None:
        """Return the response body, or None on any failure."""
        ...

    async def fetch_json(self, url: str) -> Any | None:
        """Return the decoded JSON body, or None on any failure."""
        ...


@dataclass(frozen=True)
class DirEntry:
    """A single directory listing entry."""

    name: str
    is_dir: bool
    is_file: bool


@runtime_checkable
class FileReader(Protocol):
    """Read-only access to a local directory tree."""

    async def list_dir(self, path: Path) -> list[DirEntry]:
        """List immediate entries of a directory ([] if missing)."""
        ...

    async def read_text(self, path: Path) -> str | None:
        """Read a UTF-8 text file (None if missing).

        Invalid byte sequences decode to U+FFFD rather than raising.
        """
        ...


class HttpTransport:
    """Transport backed by an httpx.AsyncClient.

    Usage:
        async with HttpTransport(timeout=10.0) as transport:
            text = await transport.fetch_text(url)
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        """Initialize transport.

        Args:
            client: Pre-configured client (owned by the caller)
            timeout: Request timeout when creating our own client
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, url: str) -> httpx.Response | None:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"Request failed for {url}: {e}")
            return None
        if not response.is_success:
            logger.debug(f"GET {url} returned {response.status_code}")
            return None
        return response

    async def fetch_text(self, url: str) -> str | None:
        response = await self._get(url)
        if response is None:
            return None
        return response.text

    async def fetch_json(self, url: str) -> Any | None:
        response = await self._get(url)
        if response is None:
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning(f"Invalid JSON from {url}")
            return None


class LocalFileReader:
    """FileReader over the local filesystem.

    Blocking calls run in the default executor. A missing directory lists
    as empty and a missing file reads as None; any other OSError
    (permissions, I/O errors) propagates to the caller. Files decode as
    UTF-8 with replacement, so a bad byte becomes U+FFFD instead of a
    UnicodeDecodeError, matching how response bodies are decoded.
    """

    async def list_dir(self, path: Path) -> list[DirEntry]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._list_dir, Path(path))

    async def read_text(self, path: Path) -> str | None:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read_text, Path(path))

    @staticmethod
    def _list_dir(path: Path) -> list[DirEntry]:
        try:
            children = sorted(path.iterdir(), key=lambda p: p.name)
        except (FileNotFoundError, NotADirectoryError):
            return []
        return [
            DirEntry(name=child.name, is_dir=child.is_dir(), is_file=child.is_file())
            for child in children
        ]

    @staticmethod
    def _read_text(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except (FileNotFoundError, IsADirectoryError):
            return None
