"""Shared fixtures: a local resource container cache and a fake Door43 server."""

from __future__ import annotations

import base64
import re
from pathlib import Path

import httpx
import pytest

from rcbundle.bundle.library import ResourceLibrary
from rcbundle.config import Settings
from rcbundle.sources.door43 import Door43Client
from rcbundle.sources.transport import HttpTransport, LocalFileReader

BASE_URL = "https://door43.test"

ULT_MANIFEST = """\
dublin_core:
  conformsto: rc0.2
  creator: unfoldingWord
  identifier: ult
  language:
    identifier: en
    title: English
  subject: Aligned Bible
  title: unfoldingWord Literal Text
  version: '86'
  relation:
    - en/tn?v=86
    - en/twl?v=86
    - en/tw
    - el-x-koine/ugnt?v=0.34
projects:
  - identifier: tit
    path: ./57-TIT.usfm
  - identifier: 3jn
    path: ./65-3JN.usfm
"""

TN_MANIFEST = """\
dublin_core:
  creator: unfoldingWord
  identifier: tn
  language:
    identifier: en
  subject: TSV Translation Notes
  version: '86'
  relation:
    - en/ult
    - en/ta
projects:
  - identifier: tit
    path: ./tn_TIT.tsv
  - identifier: 3jn
    path: ./tn_3JN.tsv
"""

TWL_MANIFEST = """\
dublin_core:
  creator: unfoldingWord
  identifier: twl
  language:
    identifier: en
  subject: TSV Translation Words Links
  version: '86'
  relation:
    - en/tw
projects:
  - identifier: tit
    path: ./twl_TIT.tsv
"""

TW_MANIFEST = """\
dublin_core:
  creator: unfoldingWord
  identifier: tw
  language:
    identifier: en
  subject: Translation Words
  version: '86'
projects:
  - identifier: bible
    path: ./bible
"""

TIT_USFM = """\
\\id TIT EN_ULT en_English_ltr
\\h Titus
\\c 1
\\p
\\v 1 Paul, a servant of God
and an apostle of Jesus Christ,
\\v 2 in hope of everlasting life
\\c 2
\\v 1 But you, speak what fits sound teaching.
"""

TJN_USFM = """\
\\id 3JN
\\c 1
\\v 1 The elder to the beloved Gaius.
"""

TN_TIT = (
    "Reference\tID\tTags\tSupportReference\tQuote\tOccurrence\tNote\n"
    "front:intro\tm2jl\t\t\t\t0\t# Introduction to Titus\n"
    "1:1\trtc9\t\trc://*/ta/man/translate/figs-abstractnouns\tκατὰ πίστιν\t1\tAbstract noun\n"
    '1:1-3\tabcd\tgrammar\t\tΠαῦλος\t1\t"Quoted\tnote"\n'
    "1:4\txyz1\t\t\t\t1\tGreeting\n"
)

TWL_TIT = (
    "Reference\tID\tTags\tOrigWords\tOccurrence\tTWLink\n"
    "1:1\tj2kl\tname\tΠαῦλος\t1\trc://*/tw/dict/bible/names/paul\n"
    "1:1\tx7p4\tkeyterm\tπίστιν\t1\trc://*/tw/dict/bible/kt/faith\n"
)

FAITH_MD = """\
# faith, faithful

## Definition:

To have faith in someone is to believe that he is trustworthy.

## Translation Suggestions:

* "trust"
"""

PAUL_MD = """\
# Paul, Saul

## Facts:

Paul was a leader of the early church.
"""

CACHE_LAYOUT = {
    "en_ult": {
        "manifest.yaml": ULT_MANIFEST,
        "57-TIT.usfm": TIT_USFM,
        "65-3JN.usfm": TJN_USFM,
    },
    "en_tn": {"manifest.yaml": TN_MANIFEST, "tn_TIT.tsv": TN_TIT},
    "en_twl": {"manifest.yaml": TWL_MANIFEST, "twl_TIT.tsv": TWL_TIT},
    "en_tw": {
        "manifest.yaml": TW_MANIFEST,
        "bible/kt/faith.md": FAITH_MD,
        "bible/names/paul.md": PAUL_MD,
    },
}


def write_container(root: Path, files: dict[str, str]) -> Path:
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


# ============================================================================
# Fake content service
# ============================================================================

CONTENTS_PATH = re.compile(r"^/api/v1/repos/([^/]+)/([^/]+)/contents(?:/(.*))?$")
RAW_PATH = re.compile(r"^/([^/]+)/([^/]+)/raw/branch/([^/]+)/(.*)$")


class FakeDoor43:
    """In-memory stand-in for the Door43 API, served through httpx.MockTransport."""

    def __init__(self):
        self.repos: dict[tuple[str, str], dict[str, str]] = {}
        self.catalog: list = []
        self.subjects: list = []
        self.facets: dict[str, list] = {}
        self.requests: list[httpx.Request] = []

    def add_repo(self, owner: str, repo: str, files: dict[str, str]) -> None:
        self.repos[(owner, repo)] = dict(files)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/api/v1/catalog/search":
            return httpx.Response(200, json={"ok": True, "data": self.catalog})
        if path == "/api/v1/catalog/list/subjects":
            return httpx.Response(200, json=self.subjects)
        if path.startswith("/api/v1/catalog/list/"):
            facet = path.rsplit("/", 1)[-1]
            return httpx.Response(200, json={"data": self.facets.get(facet, [])})

        match = CONTENTS_PATH.match(path)
        if match:
            return self._contents(match.group(1), match.group(2), match.group(3) or "")

        match = RAW_PATH.match(path)
        if match:
            files = self.repos.get((match.group(1), match.group(2)), {})
            text = files.get(match.group(4))
            if text is None:
                return httpx.Response(404, text="Not found")
            return httpx.Response(200, text=text)

        return httpx.Response(404, json={"message": "not found"})

    def _contents(self, owner: str, repo: str, rel_path: str) -> httpx.Response:
        files = self.repos.get((owner, repo))
        if files is None:
            return httpx.Response(404, json={"message": "repo not found"})

        rel_path = rel_path.strip("/")
        if rel_path in files:
            encoded = base64.b64encode(files[rel_path].encode("utf-8")).decode("ascii")
            return httpx.Response(
                200,
                json={
                    "name": rel_path.rsplit("/", 1)[-1],
                    "path": rel_path,
                    "type": "file",
                    "encoding": "base64",
                    "content": encoded,
                },
            )

        prefix = f"{rel_path}/" if rel_path else ""
        children: dict[str, str] = {}
        for file_path in files:
            if not file_path.startswith(prefix):
                continue
            head, sep, _ = file_path[len(prefix) :].partition("/")
            children[head] = "dir" if sep else "file"
        if not children:
            return httpx.Response(404, json={"message": "path not found"})
        return httpx.Response(
            200,
            json=[
                {"name": name, "path": f"{prefix}{name}", "type": kind}
                for name, kind in sorted(children.items())
            ],
        )

    def transport(self) -> HttpTransport:
        return HttpTransport(
            client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        )


def catalog_entry(owner: str, repo: str, title: str, language: str = "en") -> dict:
    return {
        "name": repo,
        "owner": owner,
        "full_name": f"{owner}/{repo}",
        "repo": {"full_name": f"{owner}/{repo}", "default_branch": "master"},
        "title": title,
        "language": language,
        "subject": "Aligned Bible",
        "release": {"tag_name": "v86"},
        "stage": "prod",
    }


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def cache_root(tmp_path) -> Path:
    """A cache holding en_ult, en_tn, en_twl, en_tw plus a non-container dir."""
    root = tmp_path / "resource_containers"
    for name, files in CACHE_LAYOUT.items():
        write_container(root / name, files)
    (root / "scratch").mkdir()
    (root / "scratch" / "notes.txt").write_text("not a container")
    (root / "README.md").write_text("cache root")
    return root


@pytest.fixture
def door43() -> FakeDoor43:
    """Fake service with unfoldingWord/en_ult and unfoldingWord/en_tn."""
    fake = FakeDoor43()
    fake.add_repo(
        "unfoldingWord",
        "en_ult",
        {
            "manifest.yaml": ULT_MANIFEST,
            "57-TIT.usfm": TIT_USFM,
            "65-3JN.usfm": TJN_USFM,
            "LICENSE.md": "CC BY-SA 4.0",
        },
    )
    fake.add_repo(
        "unfoldingWord",
        "en_tn",
        {"manifest.yaml": TN_MANIFEST, "tn_TIT.tsv": TN_TIT},
    )
    fake.catalog = [
        catalog_entry("unfoldingWord", "en_ult", "unfoldingWord Literal Text"),
        catalog_entry("unfoldingWord", "en_tn", "unfoldingWord Translation Notes"),
        {"name": "orphan"},
        "not-an-object",
    ]
    fake.subjects = [{"subject": "Bible"}, {"subject": "Aligned Bible"}, "TSV Translation Notes"]
    return fake


@pytest.fixture
def settings(cache_root) -> Settings:
    return Settings(cache_root=cache_root, base_url=BASE_URL)


@pytest.fixture
def door43_client(door43) -> Door43Client:
    return Door43Client(door43.transport(), BASE_URL)


@pytest.fixture
def reader() -> LocalFileReader:
    return LocalFileReader()


@pytest.fixture
def library(settings, door43) -> ResourceLibrary:
    return ResourceLibrary(settings, transport=door43.transport(), reader=LocalFileReader())


@pytest.fixture
def make_door43():
    """Factory for empty fake services."""
    return FakeDoor43


@pytest.fixture
def make_container():
    """write_container(root, {rel_path: text}) helper."""
    return write_container
