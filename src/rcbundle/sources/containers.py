"""Uniform access to a resource package's files.

Loaders work against a ResourceContainer, so the same code reads a
repository on the content service or a directory in the local cache:
- load_manifest(): detected manifest (or None)
- list_files(root, max_depth): recursive file listing, container-relative
- read_text(path): file text (or None)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from rcbundle.sources.catalog import LocalLocator, RemoteLocator, ResourceDescriptor
from rcbundle.sources.door43 import Door43Client
from rcbundle.sources.manifest import (
    DetectedManifest,
    load_repository_manifest,
    read_container_manifest,
)
from rcbundle.sources.selector import sanitize_relative_path
from rcbundle.sources.transport import FileReader

logger = logging.getLogger(__name__)


class ResourceContainer(Protocol):
    """Read access to one resource package."""

    @property
    def label(self) -> str:
        """Human-readable location for messages."""
        ...

    async def load_manifest(self) -> DetectedManifest | None: ...

    async def list_files(self, root: str = "", max_depth: int = 6) -> list[str]: ...

    async def read_text(self, rel_path: str) -> str | None: ...


class RemoteContainer:
    """A repository on the content service."""

    def __init__(self, client: Door43Client, owner: str, repo: str, ref: str):
        self.client = client
        self.owner = owner
        self.repo = repo
        self.ref = ref

    @property
    def label(self) -> str:
        return f"{self.owner}/{self.repo}"

    async def load_manifest(self) -> DetectedManifest | None:
        return await load_repository_manifest(
            self.client, self.owner, self.repo, ref=self.ref
        )

    async def list_files(self, root: str = "", max_depth: int = 6) -> list[str]:
        """List files under root, descending at most max_depth levels."""
        if max_depth < 0:
            return []
        entries = await self.client.get_repository_contents(
            self.owner, self.repo, sanitize_relative_path(root), ref=self.ref
        )
        files: list[str] = []
        for entry in entries:
            if entry.is_file:
                files.append(entry.path)
            elif entry.is_dir and max_depth > 0:
                files.extend(await self.list_files(entry.path, max_depth - 1))
        return files

    async def read_text(self, rel_path: str) -> str | None:
        return await self.client.get_raw_file_text(
            self.owner, self.repo, sanitize_relative_path(rel_path), ref=self.ref
        )


class LocalContainer:
    """A container directory in the local cache."""

    def __init__(self, reader: FileReader, container_path: Path):
        self.reader = reader
        self.container_path = Path(container_path)

    @property
    def label(self) -> str:
        return str(self.container_path)

    async def load_manifest(self) -> DetectedManifest | None:
        return await read_container_manifest(self.reader, self.container_path)

    async def list_files(self, root: str = "", max_depth: int = 8) -> list[str]:
        """List files under root as container-relative POSIX paths."""
        start = self.container_path / sanitize_relative_path(root)
        files: list[str] = []

        async def walk(directory: Path, depth: int) -> None:
            if depth > max_depth:
                return
            for entry in await self.reader.list_dir(directory):
                path = directory / entry.name
                if entry.is_dir:
                    await walk(path, depth + 1)
                elif entry.is_file:
                    files.append(path.relative_to(self.container_path).as_posix())

        await walk(start, 0)
        return files

    async def read_text(self, rel_path: str) -> str | None:
        return await self.reader.read_text(
            self.container_path / sanitize_relative_path(rel_path)
        )


def open_container(
    resource: ResourceDescriptor,
    client: Door43Client,
    reader: FileReader,
) -> ResourceContainer:
    """Container for a descriptor, chosen by its locator."""
    locator = resource.locator
    if isinstance(locator, LocalLocator):
        return LocalContainer(reader, locator.container_path)
    if isinstance(locator, RemoteLocator):
        return RemoteContainer(client, resource.owner, locator.repo, locator.ref)
    raise TypeError(f"Unsupported locator: {locator!r}")
