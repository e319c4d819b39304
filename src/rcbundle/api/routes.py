"""API route definitions."""

from __future__ import annotations

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from rcbundle.api.models import (
    BundleRequest,
    BundleResponse,
    CatalogFilterModel,
    GraphRequest,
    GraphResponse,
    ResourcesResponse,
    SourceTextRequest,
    SourceTextResponse,
    SubjectsResponse,
)
from rcbundle.bundle.library import ResourceLibrary, find_resource
from rcbundle.bundle.loader import SourceTextNotFoundError
from rcbundle.formats.references import parse_reference
from rcbundle.parsers.tables import row_to_dict
from rcbundle.sources.catalog import ResourceDescriptor
from rcbundle.sources.door43 import CatalogSearchParams

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["resources"])


def get_library(request: Request) -> ResourceLibrary:
    """The application's ResourceLibrary (created in the lifespan)."""
    return request.app.state.library


LibraryDep = Annotated[ResourceLibrary, Depends(get_library)]


def _filters(library: ResourceLibrary, model: CatalogFilterModel | None) -> CatalogSearchParams:
    model = model or CatalogFilterModel()
    return CatalogSearchParams(
        subject=model.subject,
        lang=model.lang,
        owner=model.owner,
        q=model.q,
        stage=model.stage or library.settings.default_stage,
    )


async def _lookup(
    library: ResourceLibrary,
    identifier: str,
    source: str,
    filters: CatalogFilterModel | None,
) -> tuple[ResourceDescriptor, list[ResourceDescriptor]]:
    pool = await library.list_resources(source, _filters(library, filters))
    resource = find_resource(pool, identifier)
    if resource is None:
        raise HTTPException(
            status_code=404, detail=f"Resource not found in {source}: {identifier}"
        )
    return resource, pool


@router.get("/resources/cached", response_model=ResourcesResponse)
async def list_cached_resources(library: LibraryDep):
    """List resource containers in the local cache."""
    resources = await library.list_cached()
    return ResourcesResponse(
        source="cached",
        count=len(resources),
        resources=[r.to_dict() for r in resources],
    )


@router.get("/resources/catalog", response_model=ResourcesResponse)
async def list_catalog_resources(
    library: LibraryDep,
    subject: Annotated[Optional[str], Query(description="Subject filter")] = None,
    lang: Annotated[Optional[str], Query(description="Language filter")] = None,
    owner: Annotated[Optional[str], Query(description="Owner filter")] = None,
    q: Annotated[Optional[str], Query(description="Free-text query")] = None,
    stage: Annotated[Optional[str], Query(description="Catalog stage")] = None,
    include_manifest: Annotated[
        bool, Query(description="Fetch manifests for relations")
    ] = True,
):
    """Search the remote catalog."""
    filters = _filters(
        library,
        CatalogFilterModel(subject=subject, lang=lang, owner=owner, q=q, stage=stage),
    )
    resources = await library.list_catalog_resources(filters, include_manifest)
    return ResourcesResponse(
        source="catalog",
        count=len(resources),
        resources=[r.to_dict() for r in resources],
    )


@router.get("/catalog/subjects", response_model=SubjectsResponse)
async def list_subjects(library: LibraryDep):
    """List catalog subjects."""
    return SubjectsResponse(subjects=await library.list_subjects())


@router.post("/graph", response_model=GraphResponse)
async def dependency_graph(request: GraphRequest, library: LibraryDep):
    """One-hop dependency graph of a resource set."""
    resources = await library.list_resources(
        request.source, _filters(library, request.filters)
    )
    graph = library.dependency_graph(resources)
    return GraphResponse(**graph.to_dict(), unresolved=graph.unresolved)


@router.post("/bundle", response_model=BundleResponse)
async def load_bundle(request: BundleRequest, library: LibraryDep):
    """Load the TN/TWL/TW support bundle of a resource.

    With a reference, the notes and word links covering that verse are
    included.
    """
    verse_ref = None
    if request.reference:
        verse_ref = parse_reference(request.reference)
        if not verse_ref.is_valid:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid reference: {request.reference!r} (expected C:V or C:V-V)",
            )

    primary, pool = await _lookup(
        library, request.resource, request.source, request.filters
    )
    bundle = await library.load_support_bundle(primary, pool, refresh=request.refresh)

    data = bundle.to_dict()
    if verse_ref:
        data["notes"] = [
            row_to_dict(r) for r in bundle.notes_for(verse_ref.chapter, verse_ref.verse_start)
        ]
        data["links"] = [
            row_to_dict(r) for r in bundle.links_for(verse_ref.chapter, verse_ref.verse_start)
        ]
    return BundleResponse(**data)


@router.post("/source-text", response_model=SourceTextResponse)
async def load_source_text(request: SourceTextRequest, library: LibraryDep):
    """Load one book's source text."""
    resource, _ = await _lookup(
        library, request.resource, request.source, request.filters
    )
    try:
        text = await library.load_source_text(resource, request.book)
    except SourceTextNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return SourceTextResponse(
        **text.to_dict(),
        verses=[
            {"chapter": v.chapter, "verse": v.verse, "text": v.text}
            for v in text.verses()
        ],
    )
