"""Tests for manifest detection, normalization and loading."""

import json

import pytest

from rcbundle.sources.door43 import Door43Client, RepoContentEntry
from rcbundle.sources.manifest import (
    MANIFEST_CANDIDATES,
    DetectedManifest,
    ManifestFormat,
    detect_manifest_format,
    list_manifest_projects,
    load_repository_manifest,
    parse_manifest_text,
    pick_candidate_file_names,
    read_container_manifest,
    summarize_manifest,
)


# ============================================================================
# Detection
# ============================================================================


class TestDetectManifestFormat:
    """Ordered rule table."""

    def test_resource_container(self):
        assert (
            detect_manifest_format({"dublin_core": {"identifier": "ult"}})
            is ManifestFormat.RESOURCE_CONTAINER
        )

    def test_tcore_resource_container(self):
        assert (
            detect_manifest_format({"resource_container": {}})
            is ManifestFormat.TCORE_RESOURCE_CONTAINER
        )

    def test_scripture_burrito(self):
        doc = {"meta": {"format": "scripture burrito"}}
        assert detect_manifest_format(doc) is ManifestFormat.SCRIPTURE_BURRITO

    def test_translationcore(self):
        doc = {
            "project": {"id": "tit"},
            "resource": {"id": "ult"},
            "target_language": {"id": "en"},
            "tc_version": 7,
        }
        assert detect_manifest_format(doc) is ManifestFormat.TRANSLATIONCORE

    def test_translationcore_requires_numeric_version(self):
        doc = {
            "project": {},
            "resource": {},
            "target_language": {},
            "tc_version": "7",
        }
        assert detect_manifest_format(doc) is ManifestFormat.UNKNOWN

    def test_translationstudio(self):
        doc = {"package_version": 6, "format": "usfm", "generator": {"name": "ts-desktop"}}
        assert detect_manifest_format(doc) is ManifestFormat.TRANSLATIONSTUDIO

    def test_first_rule_wins_on_mixed_documents(self):
        """dublin_core outranks every other schema marker."""
        doc = {
            "dublin_core": {},
            "resource_container": {},
            "meta": {"format": "scripture burrito"},
        }
        assert detect_manifest_format(doc) is ManifestFormat.RESOURCE_CONTAINER

    @pytest.mark.parametrize("doc", [{}, {"meta": {"format": "other"}}, [], "text", None])
    def test_unknown(self, doc):
        assert detect_manifest_format(doc) is ManifestFormat.UNKNOWN


class TestParseManifestText:
    def test_json_file(self):
        assert parse_manifest_text('{"a": 1}', "manifest.json") == {"a": 1}

    def test_json_file_falls_back_to_yaml(self):
        assert parse_manifest_text("a: 1", "metadata.json") == {"a": 1}

    def test_yaml(self):
        assert parse_manifest_text("dublin_core:\n  identifier: tn\n", "manifest.yaml") == {
            "dublin_core": {"identifier": "tn"}
        }

    def test_malformed_yaml_is_none(self):
        """Malformed documents are skipped, never raised."""
        assert parse_manifest_text("a: [unclosed", "manifest.yaml") is None

    def test_non_mapping_is_none(self):
        assert parse_manifest_text("- a\n- b\n", "manifest.yaml") is None


# ============================================================================
# Normalization
# ============================================================================


class TestSummarizeManifest:
    def test_resource_container_fields(self):
        manifest = DetectedManifest(
            path="manifest.yaml",
            raw="",
            parsed={
                "dublin_core": {
                    "identifier": "tn",
                    "language": {"identifier": "en"},
                    "subject": "TSV Translation Notes",
                    "version": "86",
                    "relation": ["en/ult", 7, "en/ta?v=86"],
                }
            },
            format=ManifestFormat.RESOURCE_CONTAINER,
        )
        summary = summarize_manifest(manifest)
        assert summary.identifier == "tn"
        assert summary.language == "en"
        assert summary.subject == "TSV Translation Notes"
        assert summary.version == "86"
        assert summary.relations == ("en/ult", "en/ta?v=86")

    def test_translationcore_fallbacks(self):
        manifest = DetectedManifest(
            path="manifest.json",
            raw="",
            parsed={"resource": {"id": "ult", "version": "1"}, "target_language": {"id": "fr"}},
        )
        summary = summarize_manifest(manifest)
        assert summary.identifier == "ult"
        assert summary.language == "fr"
        assert summary.version == "1"
        assert summary.relations == ()

    def test_none(self):
        assert summarize_manifest(None).relations == ()


class TestListManifestProjects:
    def test_projects_list(self):
        manifest = DetectedManifest(
            path="manifest.yaml",
            raw="",
            parsed={
                "projects": [
                    {"identifier": "gen", "path": "./01-GEN.usfm"},
                    {"identifier": "exo"},
                    "junk",
                ]
            },
        )
        projects = list_manifest_projects(manifest)
        assert [(p.identifier, p.path) for p in projects] == [("gen", "./01-GEN.usfm")]

    def test_burrito_ingredients(self):
        manifest = DetectedManifest(
            path="metadata.json",
            raw="",
            parsed={
                "meta": {"format": "scripture burrito"},
                "ingredients": {
                    "ingredients/TIT.usfm": {"scope": {"TIT": []}},
                    "ingredients/styles.css": {},
                },
            },
        )
        projects = list_manifest_projects(manifest)
        assert [(p.identifier, p.path) for p in projects] == [
            ("tit", "ingredients/TIT.usfm"),
            (None, "ingredients/styles.css"),
        ]


# ============================================================================
# Loading
# ============================================================================


class TestPickCandidateFileNames:
    def test_present_candidates_in_precedence_order(self):
        entries = [
            RepoContentEntry(name="metadata.json", path="metadata.json", type="file"),
            RepoContentEntry(name="manifest.yaml", path="manifest.yaml", type="file"),
            RepoContentEntry(name="README.md", path="README.md", type="file"),
        ]
        assert pick_candidate_file_names(entries) == ["manifest.yaml", "metadata.json"]

    def test_directories_ignored(self):
        entries = [RepoContentEntry(name="manifest.yaml", path="manifest.yaml", type="dir")]
        assert pick_candidate_file_names(entries) == list(MANIFEST_CANDIDATES)

    def test_empty_listing_tries_everything(self):
        assert pick_candidate_file_names([]) == list(MANIFEST_CANDIDATES)


class TestLoadRepositoryManifest:
    """Remote manifest loading through the fake service."""

    @pytest.mark.asyncio
    async def test_loads_resource_container(self, door43_client):
        manifest = await load_repository_manifest(door43_client, "unfoldingWord", "en_ult")
        assert manifest.path == "manifest.yaml"
        assert manifest.format is ManifestFormat.RESOURCE_CONTAINER
        assert manifest.summary().language == "en"
        assert [p.identifier for p in manifest.projects()] == ["tit", "3jn"]

    @pytest.mark.asyncio
    async def test_known_format_beats_earlier_unknown(self, make_door43):
        """An unknown manifest.yaml loses to a recognized metadata.json."""
        fake = make_door43()
        fake.add_repo(
            "org",
            "burrito",
            {
                "manifest.yaml": "title: something else\n",
                "metadata.json": json.dumps({"meta": {"format": "scripture burrito"}}),
            },
        )

        client = Door43Client(fake.transport(), "https://door43.test")
        manifest = await load_repository_manifest(client, "org", "burrito")
        assert manifest.path == "metadata.json"
        assert manifest.format is ManifestFormat.SCRIPTURE_BURRITO

    @pytest.mark.asyncio
    async def test_unknown_manifest_still_returned(self, make_door43):
        fake = make_door43()
        fake.add_repo("org", "odd", {"manifest.yaml": "title: odd\n"})

        client = Door43Client(fake.transport(), "https://door43.test")
        manifest = await load_repository_manifest(client, "org", "odd")
        assert manifest.format is ManifestFormat.UNKNOWN
        assert manifest.parsed == {"title": "odd"}

    @pytest.mark.asyncio
    async def test_missing_repository(self, door43_client):
        assert await load_repository_manifest(door43_client, "nobody", "nothing") is None


class TestReadContainerManifest:
    """Local manifest loading."""

    @pytest.mark.asyncio
    async def test_package_json_wins(self, tmp_path, reader, make_container):
        make_container(
            tmp_path,
            {
                "package.json": json.dumps({"resource_container": {"id": "x"}}),
                "manifest.yaml": "dublin_core:\n  identifier: ult\n",
            },
        )
        manifest = await read_container_manifest(reader, tmp_path)
        assert manifest.path == "package.json"
        assert manifest.format is ManifestFormat.TCORE_RESOURCE_CONTAINER

    @pytest.mark.asyncio
    async def test_malformed_candidate_skipped(self, tmp_path, reader, make_container):
        make_container(
            tmp_path,
            {
                "package.json": "{not json",
                "manifest.yml": "dublin_core:\n  identifier: ult\n",
            },
        )
        manifest = await read_container_manifest(reader, tmp_path)
        assert manifest.path == "manifest.yml"

    @pytest.mark.asyncio
    async def test_no_manifest(self, tmp_path, reader):
        assert await read_container_manifest(reader, tmp_path) is None
