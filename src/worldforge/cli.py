"""WorldForge CLI - typer application entry point."""

from __future__ import annotations

import atexit
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, TypeVar
from uuid import UUID

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from worldforge.collaborators import ApiKeyRing, EnvSecretStore, LocalFileSource
from worldforge.config import WorldForgeConfig, load_config
from worldforge.export import ConflictResolution, ExportEngine, ImportEngine
from worldforge.graph import ActivityLog, WorldGraph, WorldGraphError
from worldforge.graph.errors import InvalidFieldError, NotFoundError
from worldforge.graph.relationships import describe
from worldforge.graph.search import search_elements
from worldforge.models import ActivityType, ElementType, RelationshipType
from worldforge.models.world import format_timestamp
from worldforge.observability import (
    close_file_logging,
    configure_logging,
    get_logger,
    log_context,
)
from worldforge.persistence import FileStateStore, load_graph, save_graph
from worldforge.policy import AIProvider

# Load environment variables from .env file
load_dotenv()

log = get_logger(__name__)

app = typer.Typer(
    name="wf",
    help="WorldForge: build worlds of characters, places, and lore.",
    no_args_is_help=True,
)
world_app = typer.Typer(help="Create, inspect, and delete worlds.", no_args_is_help=True)
element_app = typer.Typer(help="Manage the elements of a world.", no_args_is_help=True)
relationship_app = typer.Typer(
    help="Connect elements of a world to each other.", no_args_is_help=True
)
app.add_typer(world_app, name="world")
app.add_typer(element_app, name="element")
app.add_typer(relationship_app, name="relationship")

console = Console()

# Global state for logging flags (set by callback, used by commands)
_verbose: int = 0
_log_enabled: bool = False
_data_dir: Path | None = None

T = TypeVar("T")


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log: Annotated[
        bool,
        typer.Option(
            "--log",
            help="Enable file logging to {data_dir}/logs/debug.jsonl.",
        ),
    ] = False,
    data_dir: Annotated[
        Path | None,
        typer.Option(
            "--data-dir",
            "-d",
            help="Directory holding saved worlds (default: ./worldforge-data).",
            envvar="WORLDFORGE_DATA_DIR",
        ),
    ] = None,
) -> None:
    """WorldForge: build worlds of characters, places, and lore."""
    global _verbose, _log_enabled, _data_dir
    _verbose = verbose
    _log_enabled = log
    _data_dir = data_dir

    # Configure console logging (file logging configured once the data dir is known)
    configure_logging(verbosity=verbose)


def _load_config() -> WorldForgeConfig:
    try:
        config = load_config()
    except ValueError as e:
        console.print(f"[red]Error:[/red] Invalid configuration: {e}")
        raise typer.Exit(1) from None
    if _data_dir is not None:
        config.data_dir = _data_dir
    if _log_enabled or config.log_to_file:
        configure_logging(verbosity=_verbose, log_to_file=True, log_dir=config.logs_dir)
        atexit.register(close_file_logging)
    return config


def _fail(error: WorldGraphError) -> typer.Exit:
    console.print(Markdown(error.to_feedback()))
    return typer.Exit(1)


@contextmanager
def _session(save: bool = True) -> Iterator[tuple[WorldGraph, WorldForgeConfig]]:
    """Load the saved graph, run a command against it, and save it back.

    Typed graph errors are printed as feedback and end the command with
    exit code 1; nothing is saved in that case.
    """
    config = _load_config()
    graph = WorldGraph(config.policy(), activity=ActivityLog(config.activity_capacity))
    store = FileStateStore(config.state_dir)
    with log_context(data_dir=str(config.data_dir)):
        try:
            load_graph(graph, store)
            yield graph, config
        except WorldGraphError as e:
            log.debug("command_failed", error=type(e).__name__)
            raise _fail(e) from None
        if save:
            save_graph(graph, store)


def _pick(
    kind: str,
    reference: str,
    candidates: list[T],
    key: Callable[[T], tuple[UUID, str]],
) -> T:
    """Resolve *reference* as a full id, an exact title, or a unique id prefix."""
    ref = reference.strip()
    try:
        wanted = UUID(ref)
    except ValueError:
        wanted = None
    if wanted is not None:
        for candidate in candidates:
            if key(candidate)[0] == wanted:
                return candidate

    by_title = [c for c in candidates if key(c)[1].casefold() == ref.casefold()]
    if len(by_title) == 1:
        return by_title[0]

    # Titles win over id prefixes: "Cafe" or "1984" read as hex too.
    by_prefix = [c for c in candidates if str(key(c)[0]).startswith(ref.lower())] if ref else []
    if len(by_prefix) == 1 and not by_title:
        return by_prefix[0]
    if len(by_title) > 1 or len(by_prefix) > 1:
        raise InvalidFieldError(
            field_name=f"{kind} reference",
            reason=f"'{reference}' matches more than one {kind}; use the id instead",
        )
    raise NotFoundError(
        kind=kind,
        identity=reference,
        available=[key(c)[1] for c in candidates],
    )


def _world_id(graph: WorldGraph, reference: str) -> UUID:
    world = _pick("world", reference, graph.list_worlds(), lambda w: (w.id, w.title))
    return world.id


def _element_id(graph: WorldGraph, world_id: UUID, reference: str) -> UUID:
    element = _pick("element", reference, graph.list_elements(world_id), lambda e: (e.id, e.title))
    return element.id


def _short(identity: UUID) -> str:
    return str(identity)[:8]


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from worldforge import __version__

    console.print(f"WorldForge v{__version__}")


# -----------------------------------------------------------------------------
# Worlds
# -----------------------------------------------------------------------------


@world_app.command("create")
def world_create(
    title: Annotated[str, typer.Argument(help="World title")],
    description: Annotated[str, typer.Option("--description", "-D", help="Description.")] = "",
) -> None:
    """Create an empty world."""
    with _session() as (graph, _config):
        world_id = graph.create_world(title, description)
        remaining = graph.policy.remaining_worlds(graph.world_count())

    console.print(f"[green]✓[/green] Created world: [bold]{title.strip()}[/bold]")
    console.print(f"  ID: [dim]{world_id}[/dim]")
    if remaining is not None:
        console.print(f"  Worlds remaining on this tier: {remaining}")


@world_app.command("list")
def world_list() -> None:
    """List all worlds, most recently modified first."""
    with _session(save=False) as (graph, _config):
        worlds = graph.list_worlds()
        rows = [
            (
                w,
                sum(graph.element_counts(w.id).values()),
                len(graph.list_relationships(w.id)),
            )
            for w in worlds
        ]
        remaining = graph.policy.remaining_worlds(len(worlds))

    if not rows:
        console.print("[dim]No worlds yet. Create one with 'wf world create <title>'.[/dim]")
        return

    table = Table(title="Worlds")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Elements", justify="right")
    table.add_column("Relationships", justify="right")
    table.add_column("Last Modified", style="dim")
    for world, elements, relationships in rows:
        table.add_row(
            _short(world.id),
            world.title,
            str(elements),
            str(relationships),
            world.last_modified.strftime("%Y-%m-%d %H:%M"),
        )

    console.print()
    console.print(table)
    if remaining is not None:
        console.print(f"[dim]{remaining} more world(s) allowed on this tier.[/dim]")
    console.print()


@world_app.command("show")
def world_show(
    world: Annotated[str, typer.Argument(help="World id, id prefix, or title")],
) -> None:
    """Show a world and its elements."""
    with _session(save=False) as (graph, _config):
        world_id = _world_id(graph, world)
        info = graph.get_world(world_id)
        elements = graph.list_elements(world_id)
        counts = graph.element_counts(world_id)
        relationships = graph.list_relationships(world_id)

    body = [info.description or "[dim]No description[/dim]", ""]
    body.append(f"Created: {format_timestamp(info.created)}")
    body.append(f"Last modified: {format_timestamp(info.last_modified)}")
    body.append(f"Relationships: {len(relationships)}")
    if counts:
        body.append(
            "Elements: " + ", ".join(f"{t.value} {counts[t]}" for t in ElementType if t in counts)
        )
    console.print(Panel("\n".join(body), title=info.title, subtitle=str(info.id)))

    if elements:
        table = Table()
        table.add_column("ID", style="dim")
        table.add_column("Type", style="magenta")
        table.add_column("Title", style="cyan")
        table.add_column("Tags", style="dim")
        for element in elements:
            table.add_row(
                _short(element.id), element.type.value, element.title, ", ".join(element.tags)
            )
        console.print(table)


@world_app.command("update")
def world_update(
    world: Annotated[str, typer.Argument(help="World id, id prefix, or title")],
    title: Annotated[str | None, typer.Option("--title", "-t", help="New title.")] = None,
    description: Annotated[
        str | None, typer.Option("--description", "-D", help="New description.")
    ] = None,
) -> None:
    """Change a world's title or description."""
    if title is None and description is None:
        console.print("[yellow]Nothing to update.[/yellow] Pass --title and/or --description.")
        raise typer.Exit(1)
    with _session() as (graph, _config):
        world_id = _world_id(graph, world)
        graph.update_world(world_id, title=title, description=description)
        updated = graph.get_world(world_id)
    console.print(f"[green]✓[/green] Updated world: [bold]{updated.title}[/bold]")


@world_app.command("delete")
def world_delete(
    world: Annotated[str, typer.Argument(help="World id, id prefix, or title")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
) -> None:
    """Delete a world with all of its elements and relationships."""
    with _session() as (graph, _config):
        world_id = _world_id(graph, world)
        info = graph.get_world(world_id)
        if not yes and not typer.confirm(f"Delete world '{info.title}' and everything in it?"):
            console.print("[dim]Cancelled.[/dim]")
            return
        graph.delete_world(world_id)
    console.print(f"[green]✓[/green] Deleted world: [bold]{info.title}[/bold]")


# -----------------------------------------------------------------------------
# Elements
# -----------------------------------------------------------------------------


@element_app.command("add")
def element_add(
    world: Annotated[str, typer.Argument(help="World id, id prefix, or title")],
    title: Annotated[str, typer.Argument(help="Element title")],
    element_type: Annotated[
        str,
        typer.Option(
            "--type",
            "-t",
            help=f"Element type ({', '.join(t.value for t in ElementType)}).",
        ),
    ] = ElementType.CUSTOM.value,
    content: Annotated[
        str, typer.Option("--content", "-c", help="Text; use @Title to mention elements.")
    ] = "",
    tags: Annotated[
        list[str] | None, typer.Option("--tag", "-g", help="Tag (repeatable).")
    ] = None,
) -> None:
    """Add an element to a world."""
    with _session() as (graph, _config):
        world_id = _world_id(graph, world)
        element_id = graph.create_element(world_id, element_type, title, content, tags or ())
        element = graph.get_element(world_id, element_id)

    console.print(
        f"[green]✓[/green] Added {element.type.value.lower()}: [bold]{element.title}[/bold]"
    )
    console.print(f"  ID: [dim]{element.id}[/dim]")
    if element.mentions:
        names = ", ".join(m.element_title for m in element.mentions)
        console.print(f"  Mentions: {names}")


@element_app.command("list")
def element_list(
    world: Annotated[str, typer.Argument(help="World id, id prefix, or title")],
    element_type: Annotated[
        str | None, typer.Option("--type", "-t", help="Only elements of this type.")
    ] = None,
) -> None:
    """List a world's elements by title."""
    with _session(save=False) as (graph, _config):
        world_id = _world_id(graph, world)
        info = graph.get_world(world_id)
        elements = graph.list_elements(world_id, element_type)

    table = Table(title=f"Elements: {info.title}")
    table.add_column("ID", style="dim")
    table.add_column("Type", style="magenta")
    table.add_column("Title", style="cyan")
    table.add_column("Mentions", justify="right")
    table.add_column("Last Modified", style="dim")
    for element in elements:
        table.add_row(
            _short(element.id),
            element.type.value,
            element.title,
            str(len(element.mentions)),
            element.last_modified.strftime("%Y-%m-%d %H:%M"),
        )
    console.print()
    console.print(table)
    console.print()


@element_app.command("show")
def element_show(
    world: Annotated[str, typer.Argument(help="World id, id prefix, or title")],
    element: Annotated[str, typer.Argument(help="Element id, id prefix, or title")],
) -> None:
    """Show an element with its mentions and relationships."""
    with _session(save=False) as (graph, _config):
        world_id = _world_id(graph, world)
        element_id = _element_id(graph, world_id, element)
        item = graph.get_element(world_id, element_id)
        related = graph.relationships_for(world_id, element_id)
        titles = {e.id: e.title for e in graph.list_elements(world_id)}

    body = [item.content or "[dim]No content[/dim]", ""]
    if item.tags:
        body.append(f"Tags: {', '.join(item.tags)}")
    body.append(f"Created: {format_timestamp(item.created)}")
    body.append(f"Last modified: {format_timestamp(item.last_modified)}")
    console.print(
        Panel("\n".join(body), title=f"{item.title} ({item.type.value})", subtitle=str(item.id))
    )

    if item.mentions:
        console.print("[bold]Mentions[/bold]")
        for mention in item.mentions:
            console.print(
                f"  @{mention.element_title} [dim](at {mention.start_index}, "
                f"length {mention.length})[/dim]"
            )
    if related:
        console.print("[bold]Relationships[/bold]")
        for relationship in related:
            line = describe(relationship, element_id, titles)
            if relationship.description:
                line += f" [dim]({relationship.description})[/dim]"
            console.print(f"  {line}")


@element_app.command("update")
def element_update(
    world: Annotated[str, typer.Argument(help="World id, id prefix, or title")],
    element: Annotated[str, typer.Argument(help="Element id, id prefix, or title")],
    title: Annotated[str | None, typer.Option("--title", help="New title.")] = None,
    element_type: Annotated[str | None, typer.Option("--type", "-t", help="New type.")] = None,
    content: Annotated[str | None, typer.Option("--content", "-c", help="New content.")] = None,
    tags: Annotated[
        list[str] | None, typer.Option("--tag", "-g", help="Replace tags (repeatable).")
    ] = None,
) -> None:
    """Change an element's fields."""
    if title is None and element_type is None and content is None and tags is None:
        console.print("[yellow]Nothing to update.[/yellow]")
        raise typer.Exit(1)
    with _session() as (graph, _config):
        world_id = _world_id(graph, world)
        element_id = _element_id(graph, world_id, element)
        graph.update_element(
            world_id,
            element_id,
            element_type=element_type,
            title=title,
            content=content,
            tags=tags,
        )
        updated = graph.get_element(world_id, element_id)
    console.print(f"[green]✓[/green] Updated element: [bold]{updated.title}[/bold]")


@element_app.command("delete")
def element_delete(
    world: Annotated[str, typer.Argument(help="World id, id prefix, or title")],
    element: Annotated[str, typer.Argument(help="Element id, id prefix, or title")],
) -> None:
    """Delete an element, its relationships, and every mention of it."""
    with _session() as (graph, _config):
        world_id = _world_id(graph, world)
        element_id = _element_id(graph, world_id, element)
        title = graph.get_element(world_id, element_id).title
        graph.delete_element(world_id, element_id)
    console.print(f"[green]✓[/green] Deleted element: [bold]{title}[/bold]")


@element_app.command("reindex")
def element_reindex(
    world: Annotated[str, typer.Argument(help="World id, id prefix, or title")],
    element: Annotated[
        str | None, typer.Argument(help="Element to re-scan (default: every element)")
    ] = None,
) -> None:
    """Re-scan content for @mentions against the current titles."""
    with _session() as (graph, _config):
        world_id = _world_id(graph, world)
        if element is None:
            changed = graph.reindex_world(world_id)
        else:
            changed = int(graph.reindex_element(world_id, _element_id(graph, world_id, element)))
    console.print(f"[green]✓[/green] Re-indexed mentions: {changed} element(s) changed")


# -----------------------------------------------------------------------------
# Relationships
# -----------------------------------------------------------------------------


@relationship_app.command("add")
def relationship_add(
    world: Annotated[str, typer.Argument(help="World id, id prefix, or title")],
    source: Annotated[str, typer.Argument(help="Source element")],
    relationship_type: Annotated[
        str,
        typer.Argument(
            help=f"Relationship type ({', '.join(t.value for t in RelationshipType)})."
        ),
    ],
    target: Annotated[str, typer.Argument(help="Target element")],
    description: Annotated[
        str, typer.Option("--description", "-D", help="Description.")
    ] = "",
    bidirectional: Annotated[
        bool, typer.Option("--bidirectional", "-b", help="Mark as two-way.")
    ] = False,
) -> None:
    """Relate two elements of a world."""
    with _session() as (graph, _config):
        world_id = _world_id(graph, world)
        from_id = _element_id(graph, world_id, source)
        to_id = _element_id(graph, world_id, target)
        relationship_id = graph.create_relationship(
            world_id, from_id, to_id, relationship_type, description, bidirectional
        )
        relationship = graph.get_relationship(world_id, relationship_id)
        titles = {e.id: e.title for e in graph.list_elements(world_id)}
    console.print(
        f"[green]✓[/green] {titles[from_id]} {describe(relationship, from_id, titles)}"
    )
    console.print(f"  ID: [dim]{relationship_id}[/dim]")


@relationship_app.command("list")
def relationship_list(
    world: Annotated[str, typer.Argument(help="World id, id prefix, or title")],
) -> None:
    """List a world's relationships."""
    with _session(save=False) as (graph, _config):
        world_id = _world_id(graph, world)
        info = graph.get_world(world_id)
        relationships = graph.list_relationships(world_id)
        titles = {e.id: e.title for e in graph.list_elements(world_id)}

    table = Table(title=f"Relationships: {info.title}")
    table.add_column("ID", style="dim")
    table.add_column("From", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("To", style="cyan")
    table.add_column("Description")
    for relationship in relationships:
        arrow = "↔" if relationship.bidirectional else "→"
        table.add_row(
            _short(relationship.id),
            titles.get(relationship.from_element_id, "?"),
            f"{relationship.type.value} {arrow}",
            titles.get(relationship.to_element_id, "?"),
            relationship.description,
        )
    console.print()
    console.print(table)
    console.print()


@relationship_app.command("delete")
def relationship_delete(
    world: Annotated[str, typer.Argument(help="World id, id prefix, or title")],
    relationship: Annotated[str, typer.Argument(help="Relationship id or id prefix")],
) -> None:
    """Delete a relationship."""
    with _session() as (graph, _config):
        world_id = _world_id(graph, world)
        target = _pick(
            "relationship",
            relationship,
            graph.list_relationships(world_id),
            lambda r: (r.id, str(r.id)),
        )
        graph.delete_relationship(world_id, target.id)
    console.print(f"[green]✓[/green] Deleted relationship {_short(target.id)}")


# -----------------------------------------------------------------------------
# Activity, search, providers
# -----------------------------------------------------------------------------


@app.command()
def activity(
    world: Annotated[str | None, typer.Option("--world", "-w", help="Only this world.")] = None,
    kind: Annotated[
        list[str] | None,
        typer.Option("--type", "-t", help="Only this activity type (repeatable)."),
    ] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum items.")] = 20,
) -> None:
    """Show recent activity, newest first."""
    with _session(save=False) as (graph, _config):
        world_id = _world_id(graph, world) if world is not None else None
        try:
            types = {ActivityType.parse(k) for k in kind} if kind else None
        except ValueError as e:
            raise InvalidFieldError(field_name="activity type", reason=str(e)) from e
        items = graph.activity.query(world_id=world_id, types=types, limit=max(limit, 0))

    if not items:
        console.print("[dim]No activity recorded.[/dim]")
        return
    table = Table(title="Recent Activity")
    table.add_column("When", style="dim")
    table.add_column("World", style="cyan")
    table.add_column("What")
    for item in items:
        table.add_row(
            item.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            item.world_title,
            item.summary(),
        )
    console.print(table)


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Text to look for")],
    world: Annotated[str | None, typer.Option("--world", "-w", help="Only this world.")] = None,
    element_type: Annotated[
        str | None, typer.Option("--type", "-t", help="Only this element type.")
    ] = None,
    case_sensitive: Annotated[
        bool, typer.Option("--case-sensitive", help="Match case exactly.")
    ] = False,
) -> None:
    """Search element titles, content, and tags."""
    with _session(save=False) as (graph, _config):
        world_id = _world_id(graph, world) if world is not None else None
        try:
            results = search_elements(
                graph.snapshot(),
                query,
                world_id=world_id,
                element_type=element_type,
                case_sensitive=case_sensitive,
            )
        except ValueError as e:
            raise InvalidFieldError(field_name="element type", reason=str(e)) from e

    if not results:
        console.print(f"[dim]No elements match '{query}'.[/dim]")
        return
    for result in results:
        console.print(
            f"[cyan]{result.element.title}[/cyan] [dim]({result.element.type.value} "
            f"in {result.world.title})[/dim]"
        )
        for match in result.matches:
            console.print(f"  {match.field}: {match.text}", markup=False)


@app.command()
def providers() -> None:
    """Show AI providers available on this tier and whether a key is configured.

    Keys are read from WORLDFORGE_<PROVIDER>_API_KEY (a .env file works too).
    """
    config = _load_config()
    keyring = ApiKeyRing(EnvSecretStore(), config.policy())

    table = Table(title="AI Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Available")
    table.add_column("Key")
    for provider in AIProvider:
        allowed = keyring.policy.allows_provider(provider)
        key = keyring.get_key(provider)
        if key is None:
            key_status = "[dim]-[/dim]"
        elif key.startswith(provider.key_prefix):
            key_status = "[green]✓[/green] configured"
        else:
            key_status = f"[red]✗[/red] expected prefix '{provider.key_prefix}'"
        table.add_row(
            provider.display_name,
            "[green]✓[/green]" if allowed else "[dim]premium[/dim]",
            key_status,
        )
    console.print(table)


# -----------------------------------------------------------------------------
# Export / import
# -----------------------------------------------------------------------------


@app.command("export")
def export_worlds(
    fmt: Annotated[
        str,
        typer.Argument(metavar="FORMAT", help="Export format: json, text, markdown, csv, xml."),
    ] = "json",
    worlds: Annotated[
        list[str] | None, typer.Option("--world", "-w", help="Only this world (repeatable).")
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output directory (default: {data_dir}/exports)."),
    ] = None,
    include_activity: Annotated[
        bool,
        typer.Option("--activity/--no-activity", help="Include recent activity."),
    ] = True,
) -> None:
    """Export worlds to a file."""
    with _session(save=False) as (graph, config):
        world_ids = [_world_id(graph, w) for w in worlds] if worlds else None
        engine = ExportEngine(graph.policy)
        output_file = engine.write(
            graph.snapshot(world_ids),
            fmt,
            output_dir or config.data_dir / "exports",
            include_activity=include_activity,
        )
    console.print(f"[green]✓[/green] Exported to [bold]{output_file}[/bold]")


@app.command("import")
def import_worlds(
    path: Annotated[Path, typer.Argument(help="Canonical JSON export to import")],
    on_conflict: Annotated[
        ConflictResolution | None,
        typer.Option(
            "--on-conflict",
            help="What to do with worlds that already exist: skip or rename.",
        ),
    ] = None,
    restore_activity: Annotated[
        bool,
        typer.Option("--activity/--no-activity", help="Merge the exported activity log."),
    ] = True,
) -> None:
    """Import worlds from a canonical JSON export."""
    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)
    with _session() as (graph, _config):
        result = ImportEngine(graph).import_from(
            LocalFileSource(),
            os.fspath(path),
            on_conflict=on_conflict,
            restore_activity=restore_activity,
        )

    console.print(
        f"[green]✓[/green] Imported {len(result.imported)} world(s), "
        f"{result.elements} element(s), {result.relationships} relationship(s)"
    )
    if result.skipped:
        console.print(f"  Skipped {len(result.skipped)} conflicting world(s)")
    if result.renamed:
        console.print(f"  Imported {len(result.renamed)} world(s) as copies")
    if result.activity_restored:
        console.print(f"  Restored {result.activity_restored} activity item(s)")
