"""Pydantic models for API."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class HealthModel(BaseModel):
    """Health check response."""

    status: str
    version: str
    cache_root: str
    base_url: str


class ResourceModel(BaseModel):
    """A discoverable resource package."""

    id: str
    key: Optional[str] = Field(None, description="language/identifier")
    name: str
    owner: str
    version: str
    language: Optional[str] = None
    subject: Optional[str] = None
    relations: List[str] = Field(default_factory=list)
    manifest_format: Optional[str] = None
    project: Optional[str] = None
    stage: Optional[str] = None
    repo: Optional[str] = Field(None, description="Repository (catalog resources)")
    ref: Optional[str] = Field(None, description="Branch (catalog resources)")
    container_path: Optional[str] = Field(
        None, description="Container directory (cached resources)"
    )


class ResourcesResponse(BaseModel):
    """A resource listing."""

    source: str
    count: int
    resources: List[ResourceModel]


class SubjectsResponse(BaseModel):
    subjects: List[str]


class CatalogFilterModel(BaseModel):
    """Catalog search filters."""

    subject: Optional[str] = None
    lang: Optional[str] = None
    owner: Optional[str] = None
    q: Optional[str] = None
    stage: Optional[str] = None


class GraphRequest(BaseModel):
    """Dependency graph request."""

    source: Literal["cached", "catalog"] = "cached"
    filters: Optional[CatalogFilterModel] = None


class DependencyNodeModel(BaseModel):
    key: str
    dependencies: List[str]
    unresolved: List[str]


class GraphResponse(BaseModel):
    nodes: List[DependencyNodeModel]
    unresolved: List[str] = Field(
        default_factory=list, description="All unresolved relations"
    )


class BundleRequest(BaseModel):
    """Support bundle request."""

    resource: str = Field(..., min_length=1, description="Key, id or repo name")
    source: Literal["cached", "catalog"] = "cached"
    filters: Optional[CatalogFilterModel] = None
    reference: Optional[str] = Field(
        None, description="chapter:verse to select rows for"
    )
    refresh: bool = Field(False, description="Bypass the bundle cache")


class BundleFileModel(BaseModel):
    identifier: str
    path: str
    rows: int


class BundleRowsModel(BaseModel):
    resource: ResourceModel
    files: List[BundleFileModel]
    row_count: int
    chapters: List[int] = Field(default_factory=list)


class BundleArticlesModel(BaseModel):
    resource: ResourceModel
    article_count: int


class BundleResponse(BaseModel):
    """Support bundle summary, with rows when a reference was given."""

    primary: ResourceModel
    tn: Optional[BundleRowsModel] = None
    twl: Optional[BundleRowsModel] = None
    tw: Optional[BundleArticlesModel] = None
    unresolved_relations: List[str] = Field(default_factory=list)
    notes: Optional[List[Dict]] = None
    links: Optional[List[Dict]] = None


class SourceTextRequest(BaseModel):
    """Source text request."""

    resource: str = Field(..., min_length=1, description="Key, id or repo name")
    source: Literal["cached", "catalog"] = "cached"
    filters: Optional[CatalogFilterModel] = None
    book: Optional[str] = Field(None, description="Book id (e.g. 'tit')")


class SourceVerseModel(BaseModel):
    chapter: int
    verse: int
    text: str


class SourceTextResponse(BaseModel):
    resource: ResourceModel
    book_id: str
    path: str
    declared_book_id: Optional[str] = Field(
        None, description="Book id from the file's \\id marker"
    )
    text: str
    verses: List[SourceVerseModel]
