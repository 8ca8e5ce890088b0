"""Board inspection CLI commands."""

from __future__ import annotations

import asyncio
from typing import Annotated, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from phaseboard.board.models import ActivityEntry, Board
from phaseboard.board.repository import BoardRepository
from phaseboard.database.gateway import SqlGateway
from phaseboard.errors import NotFoundError, StoreError

app = typer.Typer(help="Project board commands")
console = Console()


def _repository() -> BoardRepository:
    from phaseboard.main import get_app_context

    return BoardRepository(SqlGateway(get_app_context().session_factory))


def _run(coro):  # type: ignore[no-untyped-def]
    """Run a board query, disposing of the engine afterwards."""
    from phaseboard.main import get_app_context

    engine = get_app_context().engine

    async def _wrapped():  # type: ignore[no-untyped-def]
        try:
            return await coro
        finally:
            await engine.dispose()

    try:
        return asyncio.run(_wrapped())
    except NotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    except StoreError as e:
        console.print(f"[red]Error reading board:[/red] {e}")
        raise typer.Exit(code=1)


def render_board(board: Board) -> Table:
    table = Table(title=f"{board.project.name} ({board.project.status.value})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Phase", style="bold")
    table.add_column("Items", justify="right")
    table.add_column("Status")

    for phase in board.active_phases:
        done = sum(1 for item in phase.items if item.completed)
        table.add_row(str(phase.position), phase.title, f"{done}/{len(phase.items)}", "active")
    for phase in board.completed_phases:
        completed_at = phase.completed_at.strftime("%Y-%m-%d") if phase.completed_at else ""
        table.add_row(
            "-",
            f"[dim]{phase.title}[/dim]",
            f"{len(phase.items)}/{len(phase.items)}",
            f"[green]completed {completed_at}[/green]",
        )
    return table


def render_feed(entries: tuple[ActivityEntry, ...]) -> Table:
    table = Table(title="Activity")
    table.add_column("When", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Content")
    for entry in entries:
        table.add_row(
            entry.created_at.strftime("%Y-%m-%d %H:%M"),
            entry.update_type.value,
            entry.content,
        )
    return table


@app.command()
def show(
    project_id: Annotated[UUID, typer.Argument(help="Project ID")],
    items: Annotated[
        bool,
        typer.Option("--items", "-i", help="List the items of each active phase"),
    ] = False,
) -> None:
    """Show a project's phases in board order."""
    board = _run(_repository().load_board(project_id))
    console.print(render_board(board))

    if items:
        for phase in board.active_phases:
            console.print(f"\n[bold]{phase.title}[/bold]")
            if not phase.items:
                console.print("  [dim]No items[/dim]")
            for item in phase.items:
                mark = "[green]✓[/green]" if item.completed else "○"
                console.print(f"  {mark} {item.title}")


@app.command()
def feed(
    project_id: Annotated[UUID, typer.Argument(help="Project ID")],
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-n", min=1, help="Entries to show (default from config)"),
    ] = None,
) -> None:
    """Show a project's activity feed, newest first."""
    from phaseboard.main import get_app_context

    count = limit or get_app_context().config.board.feed_limit
    entries = _run(_repository().load_feed(project_id, count))
    if not entries:
        console.print("[yellow]No activity yet.[/yellow]")
        return
    console.print(render_feed(entries))
