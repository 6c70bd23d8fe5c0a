"""Drama management commands."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from dramaforge.cli.handler import CLIHandler, format_json
from dramaforge.models.graph import Drama

console = Console()

drama_app = typer.Typer(
    name="drama",
    help="Create, inspect and delete dramas",
    no_args_is_help=True,
)


def _drama_table(dramas: list[Drama]) -> Table:
    table = Table(title="Dramas")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Genre")
    table.add_column("Status")
    table.add_column("Episodes", justify="right")
    table.add_column("Updated")
    for drama in dramas:
        table.add_row(
            drama.id,
            drama.title,
            drama.genre or "",
            drama.status.value,
            str(drama.total_episodes),
            drama.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    return table


@drama_app.command("list")
def list_dramas(
    status: Annotated[str | None, typer.Option("--status", help="Filter by status")] = None,
    genre: Annotated[str | None, typer.Option("--genre", help="Filter by genre")] = None,
    keyword: Annotated[
        str | None, typer.Option("--keyword", "-k", help="Search title and description")
    ] = None,
    page: Annotated[int, typer.Option("--page", min=1)] = 1,
    page_size: Annotated[int, typer.Option("--page-size", min=1)] = 20,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """List dramas, most recently updated first."""
    handler = CLIHandler(console)
    try:
        result = handler.run(
            lambda backend: backend.list_dramas(status, genre, keyword, page, page_size)
        )
    except Exception as e:
        handler.handle_error(e, json_output)
        return

    if json_output:
        print(format_json(result))
        return
    if not result.items:
        console.print("[yellow]No dramas found.[/yellow]")
        return
    console.print(_drama_table(result.items))
    info = result.pagination
    console.print(f"Page {info.page}/{max(info.total_pages, 1)} ({info.total} total)")


@drama_app.command("create")
def create_drama(
    title: Annotated[str, typer.Argument(help="Drama title")],
    description: Annotated[str | None, typer.Option("--description", "-d")] = None,
    genre: Annotated[str | None, typer.Option("--genre", "-g")] = None,
    tags: Annotated[str | None, typer.Option("--tags", help="Comma-separated tags")] = None,
    style: Annotated[str | None, typer.Option("--style")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Create a new drama."""
    handler = CLIHandler(console)
    try:
        drama = handler.run(
            lambda backend: backend.create_drama(title, description, genre, tags, style)
        )
    except Exception as e:
        handler.handle_error(e, json_output)
        return
    handler.handle_success(f"Created drama {drama.id}: {drama.title}", drama, json_output)


@drama_app.command("show")
def show_drama(
    drama_id: Annotated[str, typer.Argument(help="Drama ID")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show a drama with its episodes, scenes and characters."""
    handler = CLIHandler(console)
    try:
        drama = handler.run(lambda backend: backend.get_drama(drama_id))
    except Exception as e:
        handler.handle_error(e, json_output)
        return

    if json_output:
        print(format_json(drama))
        return
    console.print(f"[bold cyan]{drama.title}[/bold cyan] ({drama.id})")
    if drama.description:
        console.print(drama.description)
    console.print(f"Status: {drama.status.value}  Genre: {drama.genre or '-'}")
    if drama.tags:
        console.print(f"Tags: {', '.join(drama.tags)}")

    episodes = Table(title="Episodes")
    episodes.add_column("#", justify="right")
    episodes.add_column("ID", style="cyan")
    episodes.add_column("Title")
    episodes.add_column("Storyboards", justify="right")
    episodes.add_column("Minutes", justify="right")
    for episode in drama.episodes:
        episodes.add_row(
            str(episode.episode_number),
            episode.id,
            episode.title,
            str(episode.storyboard_count),
            str(episode.duration),
        )
    console.print(episodes)
    console.print(
        f"Characters: {len(drama.characters)}  Scenes: {drama.total_scenes}"
    )


@drama_app.command("delete")
def delete_drama(
    drama_id: Annotated[str, typer.Argument(help="Drama ID")],
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation")] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Delete a drama and everything it owns."""
    handler = CLIHandler(console)
    if not force and not typer.confirm(f"Delete drama {drama_id}?"):
        raise typer.Abort()
    try:
        deleted = handler.run(lambda backend: backend.delete_drama(drama_id))
    except Exception as e:
        handler.handle_error(e, json_output)
        return
    if not deleted:
        console.print(f"[yellow]Drama not found: {drama_id}[/yellow]")
        raise typer.Exit(1)
    handler.handle_success(f"Deleted drama {drama_id}", json_output=json_output)
