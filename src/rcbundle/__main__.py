"""CLI entry point for rcbundle."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from rcbundle import __version__
from rcbundle.bundle.library import SOURCES, ResourceLibrary, find_resource
from rcbundle.bundle.loader import SourceTextNotFoundError
from rcbundle.config import Settings, configure_logging
from rcbundle.formats.references import parse_reference
from rcbundle.parsers.tables import row_to_dict
from rcbundle.sources.door43 import CatalogSearchParams

console = Console()


def _run(coro):
    return asyncio.run(coro)


def _print_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _catalog_filters(
    settings: Settings,
    subject: str | None,
    lang: str | None,
    owner: str | None,
    stage: str | None,
) -> CatalogSearchParams:
    return CatalogSearchParams(
        subject=subject, lang=lang, owner=owner, stage=stage or settings.default_stage
    )


def _resources_table(title: str, resources) -> Table:
    table = Table(title=title)
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("Owner", style="green")
    table.add_column("Version", style="yellow")
    table.add_column("Format", style="dim")
    table.add_column("Relations", justify="right")
    for r in resources:
        table.add_row(
            r.key or r.id,
            r.name,
            r.owner,
            r.version,
            r.manifest_format.value if r.manifest_format else "",
            str(len(r.relations)),
        )
    return table


catalog_options = [
    click.option("--subject", default=None, help="Catalog subject filter"),
    click.option("--lang", default=None, help="Language code filter"),
    click.option("--owner", default=None, help="Owner (organization) filter"),
    click.option("--stage", default=None, help="Catalog stage (default: prod)"),
]


def with_catalog_options(func):
    for option in reversed(catalog_options):
        func = option(func)
    return func


source_option = click.option(
    "--source",
    "-S",
    type=click.Choice(SOURCES),
    default="cached",
    help="Where to look resources up",
)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--cache-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Local resource container cache (env: RCBUNDLE_CACHE_ROOT)",
)
@click.option("--base-url", default=None, help="Content service URL (env: RCBUNDLE_BASE_URL)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level (env: RCBUNDLE_LOG_LEVEL)",
)
@click.pass_context
def cli(ctx, cache_root: Path | None, base_url: str | None, log_level: str | None):
    """rcbundle - translation resource discovery and loading."""
    settings = Settings.from_env()
    if cache_root:
        settings.cache_root = cache_root
    if base_url:
        settings.base_url = base_url
    if log_level:
        settings.log_level = log_level.upper()
    configure_logging(settings.log_level)
    ctx.obj = settings


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def cached(settings: Settings, as_json: bool):
    """List resource containers in the local cache."""

    async def _list():
        async with ResourceLibrary(settings) as library:
            return await library.list_cached()

    resources = _run(_list())

    if as_json:
        _print_json([r.to_dict() for r in resources])
        return

    if not resources:
        console.print(f"[yellow]No cached resources under {settings.cache_root}[/yellow]")
        return
    console.print(_resources_table("Cached Resources", resources))


@cli.command()
@with_catalog_options
@click.option(
    "--no-manifest", is_flag=True, help="Skip fetching manifests (no relations)"
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def catalog(
    settings: Settings,
    subject: str | None,
    lang: str | None,
    owner: str | None,
    stage: str | None,
    no_manifest: bool,
    as_json: bool,
):
    """Search the remote catalog.

    Example: rcbundle catalog --lang en --owner unfoldingWord
    """
    filters = _catalog_filters(settings, subject, lang, owner, stage)

    async def _search():
        async with ResourceLibrary(settings) as library:
            return await library.list_catalog_resources(
                filters, include_manifest=not no_manifest
            )

    resources = _run(_search())

    if as_json:
        _print_json([r.to_dict() for r in resources])
        return

    if not resources:
        console.print("[yellow]No catalog entries matched[/yellow]")
        return
    console.print(_resources_table("Catalog Resources", resources))


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def subjects(settings: Settings, as_json: bool):
    """List catalog subjects."""

    async def _list():
        async with ResourceLibrary(settings) as library:
            return await library.list_subjects()

    values = _run(_list())
    if as_json:
        _print_json(values)
        return
    for value in values:
        console.print(f"  • {value}")


@cli.command()
@source_option
@with_catalog_options
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def graph(
    settings: Settings,
    source: str,
    subject: str | None,
    lang: str | None,
    owner: str | None,
    stage: str | None,
    as_json: bool,
):
    """Show the one-hop dependency graph of a resource set."""
    filters = _catalog_filters(settings, subject, lang, owner, stage)

    async def _graph():
        async with ResourceLibrary(settings) as library:
            resources = await library.list_resources(source, filters)
            return library.dependency_graph(resources)

    dependency_graph = _run(_graph())

    if as_json:
        _print_json(dependency_graph.to_dict())
        return

    table = Table(title="Dependency Graph")
    table.add_column("Resource", style="cyan")
    table.add_column("Depends On", style="green")
    table.add_column("Unresolved", style="red")
    for node in dependency_graph.nodes:
        table.add_row(
            node.key, ", ".join(node.dependencies), ", ".join(node.unresolved)
        )
    console.print(table)


@cli.command()
@click.argument("resource_id")
@source_option
@with_catalog_options
@click.option("--ref", "reference", default=None, help="Show rows for chapter:verse")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def bundle(
    settings: Settings,
    resource_id: str,
    source: str,
    subject: str | None,
    lang: str | None,
    owner: str | None,
    stage: str | None,
    reference: str | None,
    as_json: bool,
):
    """Load the TN/TWL/TW support bundle of a resource.

    Example: rcbundle bundle en/ult --ref 3:16
    """
    verse_ref = None
    if reference:
        verse_ref = parse_reference(reference)
        if not verse_ref.is_valid:
            console.print(f"[red]Error: invalid reference {reference!r}[/red]")
            sys.exit(1)

    filters = _catalog_filters(settings, subject, lang, owner, stage)

    async def _load():
        async with ResourceLibrary(settings) as library:
            pool = await library.list_resources(source, filters)
            primary = find_resource(pool, resource_id)
            if primary is None:
                return None
            return await library.load_support_bundle(primary, pool)

    support = _run(_load())
    if support is None:
        console.print(f"[red]Error: resource {resource_id!r} not found[/red]")
        sys.exit(1)

    notes, links = [], []
    if verse_ref:
        notes = support.notes_for(verse_ref.chapter, verse_ref.verse_start)
        links = support.links_for(verse_ref.chapter, verse_ref.verse_start)

    if as_json:
        data = support.to_dict()
        if verse_ref:
            data["notes"] = [row_to_dict(r) for r in notes]
            data["links"] = [row_to_dict(r) for r in links]
        _print_json(data)
        return

    summary = support.to_dict()
    lines = [f"[bold]{support.primary.name}[/bold] ({support.primary.key or support.primary.id})"]
    for slot in ("tn", "twl"):
        info = summary[slot]
        if info:
            chapters = info["chapters"]
            span = f", ch. {chapters[0]}-{chapters[-1]}" if chapters else ""
            lines.append(
                f"{slot.upper()}: {info['resource']['id']} "
                f"({len(info['files'])} files, {info['row_count']} rows{span})"
            )
        else:
            lines.append(f"{slot.upper()}: [dim]none[/dim]")
    if summary["tw"]:
        lines.append(
            f"TW: {summary['tw']['resource']['id']} "
            f"({summary['tw']['article_count']} articles)"
        )
    else:
        lines.append("TW: [dim]none[/dim]")
    console.print(Panel("\n".join(lines), title="Support Bundle"))

    if support.unresolved_relations:
        console.print("[yellow]Unresolved relations:[/yellow]")
        for relation in support.unresolved_relations:
            console.print(f"  • {relation}")

    if verse_ref:
        console.print(f"\n[bold]{reference}[/bold]")
        for note in notes:
            console.print(f"  [cyan]{note.id}[/cyan] {note.quote}: {note.note}")
        for link in links:
            article = support.article_for(link.tw_rc_link)
            title = article.article.title if article else ""
            console.print(f"  [green]{link.orig_words}[/green] -> {link.tw_link} {title}")


@cli.command()
@click.argument("resource_id")
@source_option
@with_catalog_options
@click.option("--book", "-b", default=None, help="Book id (e.g. gen, 3jn)")
@click.option("--output", "-o", type=click.Path(), help="Write the text to a file")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def source(
    settings: Settings,
    resource_id: str,
    source: str,
    subject: str | None,
    lang: str | None,
    owner: str | None,
    stage: str | None,
    book: str | None,
    output: str | None,
    as_json: bool,
):
    """Load one book's source text.

    Example: rcbundle source en_ult --book tit
    """
    filters = _catalog_filters(settings, subject, lang, owner, stage)

    async def _load():
        async with ResourceLibrary(settings) as library:
            pool = await library.list_resources(source, filters)
            resource = find_resource(pool, resource_id)
            if resource is None:
                return None
            return await library.load_source_text(resource, book)

    try:
        text = _run(_load())
    except SourceTextNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if text is None:
        console.print(f"[red]Error: resource {resource_id!r} not found[/red]")
        sys.exit(1)

    if output:
        Path(output).write_text(text.text, encoding="utf-8")
        console.print(f"[green]✓ {text.book_id} written to {output}[/green]")
        return

    if as_json:
        _print_json(text.to_dict())
        return

    verses = text.verses()
    declared = text.declared_book_id
    lines = [f"[bold]{text.book_id}[/bold] from {text.path}"]
    if declared and declared != text.book_id:
        lines.append(f"[yellow]File declares book {declared}[/yellow]")
    lines.append(f"{len(verses)} verses")
    console.print(Panel("\n".join(lines), title=text.resource.name))
    for verse in verses[:10]:
        console.print(f"  [dim]{verse.chapter}:{verse.verse}[/dim] {verse.text}")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind host")
@click.option("--port", default=8000, help="Bind port")
@click.pass_obj
def serve(settings: Settings, host: str, port: int):
    """Start the API server."""
    import uvicorn

    from rcbundle.api.main import create_app

    console.print(f"[bold blue]Starting rcbundle API at http://{host}:{port}[/bold blue]")
    uvicorn.run(create_app(settings), host=host, port=port)


if __name__ == "__main__":
    cli()
