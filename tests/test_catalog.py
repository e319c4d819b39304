"""Tests for resource discovery: local cache scan and remote catalog search."""

from pathlib import Path

import pytest

from rcbundle.sources.catalog import (
    UNKNOWN_OWNER,
    UNKNOWN_VERSION,
    LocalLocator,
    RemoteLocator,
    ResourceDescriptor,
    list_cached,
    list_catalog_resources,
    parse_owner,
    parse_repo_identity,
)
from rcbundle.sources.door43 import CatalogSearchParams
from rcbundle.sources.manifest import ManifestFormat


# ============================================================================
# Local cache
# ============================================================================


class TestListCached:
    """Scanning the cache root."""

    @pytest.mark.asyncio
    async def test_lists_containers_sorted_by_name(self, reader, cache_root):
        """Directories without a manifest and plain files are skipped."""
        resources = await list_cached(reader, cache_root)
        assert [r.id for r in resources] == ["en_tn", "en_tw", "en_twl", "en_ult"]

    @pytest.mark.asyncio
    async def test_descriptor_fields(self, reader, cache_root):
        resources = {r.id: r for r in await list_cached(reader, cache_root)}
        ult = resources["en_ult"]
        assert ult.key == "en/ult"
        assert ult.owner == "unfoldingWord"
        assert ult.version == "86"
        assert ult.language == "en"
        assert ult.subject == "Aligned Bible"
        assert ult.manifest_format is ManifestFormat.RESOURCE_CONTAINER
        assert ult.relations == (
            "en/tn?v=86",
            "en/twl?v=86",
            "en/tw",
            "el-x-koine/ugnt?v=0.34",
        )
        assert ult.locator == LocalLocator(cache_root / "en_ult")
        assert not ult.is_remote

    @pytest.mark.asyncio
    async def test_missing_root_is_empty(self, reader, tmp_path):
        assert await list_cached(reader, tmp_path / "missing") == []

    @pytest.mark.asyncio
    async def test_malformed_manifest_skipped(self, reader, tmp_path, make_container):
        make_container(tmp_path / "broken", {"manifest.yaml": "dublin_core: [oops"})
        make_container(
            tmp_path / "ok",
            {"manifest.yaml": "dublin_core:\n  identifier: ult\n  language:\n    identifier: fr\n"},
        )
        resources = await list_cached(reader, tmp_path)
        assert [r.id for r in resources] == ["ok"]
        assert resources[0].owner == UNKNOWN_OWNER
        assert resources[0].version == UNKNOWN_VERSION
        assert resources[0].key == "fr/ok"


class TestParseOwner:
    def test_creator_list_joined(self):
        assert parse_owner({"dublin_core": {"creator": ["A", "", "B"]}}) == "A, B"

    def test_creator_string(self):
        assert parse_owner({"dublin_core": {"creator": "Door43 World Missions"}}) == (
            "Door43 World Missions"
        )

    def test_missing(self):
        assert parse_owner({}) == UNKNOWN_OWNER


# ============================================================================
# Remote catalog
# ============================================================================


class TestParseRepoIdentity:
    def test_full_name(self):
        assert parse_repo_identity({"full_name": "unfoldingWord/en_tn"}) == (
            "unfoldingWord",
            "en_tn",
        )

    def test_owner_object_and_name(self):
        entry = {"owner": {"username": "Door43-Catalog"}, "name": "hi_ulb"}
        assert parse_repo_identity(entry) == ("Door43-Catalog", "hi_ulb")

    def test_incomplete_entry(self):
        assert parse_repo_identity({"name": "orphan"}) is None


class TestListCatalogResources:
    """Catalog search through the fake service."""

    @pytest.mark.asyncio
    async def test_search_builds_descriptors(self, door43_client):
        """Entries without owner/repo and non-objects are dropped."""
        resources = await list_catalog_resources(door43_client)
        assert [r.id for r in resources] == ["en_ult", "en_tn"]

        ult = resources[0]
        assert ult.owner == "unfoldingWord"
        assert ult.locator == RemoteLocator(repo="en_ult", ref="master")
        assert ult.key == "en/ult"
        assert ult.is_remote

    @pytest.mark.asyncio
    async def test_manifest_supplies_relations_and_version(self, door43_client):
        resources = {r.id: r for r in await list_catalog_resources(door43_client)}
        ult = resources["en_ult"]
        assert ult.version == "86"
        assert "en/tn?v=86" in ult.relations
        assert ult.manifest_format is ManifestFormat.RESOURCE_CONTAINER

    @pytest.mark.asyncio
    async def test_without_manifest(self, door43_client, door43):
        resources = await list_catalog_resources(door43_client, include_manifest=False)
        assert resources[0].version == "v86"
        assert resources[0].relations == ()
        assert all("/contents" not in r.url.path for r in door43.requests)

    @pytest.mark.asyncio
    async def test_filters_in_query(self, door43_client, door43):
        await list_catalog_resources(
            door43_client,
            CatalogSearchParams(subject="Aligned Bible", lang="en", owner=""),
            include_manifest=False,
        )
        params = door43.requests[0].url.params
        assert params["subject"] == "Aligned Bible"
        assert params["lang"] == "en"
        assert params["stage"] == "prod"
        assert "owner" not in params
        assert "q" not in params


class TestDescriptorSerialization:
    def test_local_round_trip(self):
        resource = ResourceDescriptor(
            id="en_ult",
            name="ult",
            owner="unfoldingWord",
            version="86",
            locator=LocalLocator(Path("/cache/en_ult")),
            language="en",
            relations=("en/tn",),
            manifest_format=ManifestFormat.RESOURCE_CONTAINER,
        )
        data = resource.to_dict()
        assert data["key"] == "en/ult"
        assert data["container_path"] == "/cache/en_ult"
        assert ResourceDescriptor.from_dict(data) == resource

    def test_remote_fields(self):
        resource = ResourceDescriptor(
            id="en_tn",
            name="Notes",
            owner="unfoldingWord",
            version="86",
            locator=RemoteLocator(repo="en_tn", ref="v86"),
            language="en",
        )
        data = resource.to_dict()
        assert (data["repo"], data["ref"]) == ("en_tn", "v86")
        assert "container_path" not in data
