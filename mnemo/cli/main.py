"""
mnemo CLI - spaced repetition with prerequisites and incremental reading.

Usage:
    mnemo add "What is TCP?" "A reliable transport protocol" --activate
    mnemo depend 2 1          # card 2 waits until card 1 is resolved
    mnemo review              # interactive review of due cards
    mnemo read add notes.txt  # add a reading source
    mnemo read next           # show the next reading item
    mnemo status
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table
from rich.tree import Tree

from mnemo.app import Workspace, open_workspace
from mnemo.config import Settings, get_settings
from mnemo.core.errors import MnemoError, StorageFailure
from mnemo.core.items import ItemStatus, LearningItem
from mnemo.logging_setup import configure_logging

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="mnemo",
    help="Spaced repetition with prerequisites and incremental reading",
    add_completion=False,
    rich_markup_mode="rich",
)
topic_app = typer.Typer(name="topic", help="Manage the topic tree")
read_app = typer.Typer(name="read", help="Incremental reading")
app.add_typer(topic_app, name="topic")
app.add_typer(read_app, name="read")

console = Console()


def _now() -> datetime:
    return datetime.now(UTC)


@contextmanager
def workspace(ctx: typer.Context) -> Generator[Workspace, None, None]:
    """Open the workspace for this invocation and turn core errors into messages."""
    settings: Settings = ctx.obj if ctx.obj is not None else get_settings()
    try:
        ws = open_workspace(settings)
    except StorageFailure as e:
        console.print(f"[red]Cannot open database: {escape(str(e))}[/]")
        raise typer.Exit(1) from e
    try:
        yield ws
    except StorageFailure as e:
        logger.error(f"Storage failure: {e}")
        console.print(f"[red]Storage error: {escape(str(e))}[/]\n[yellow]Nothing was changed; try again.[/]")
        raise typer.Exit(1) from e
    except (MnemoError, ValueError) as e:
        console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(1) from e
    finally:
        ws.close()


def _item_panel(item: LearningItem, show_answer: bool = False) -> Panel:
    body = f"[bold]{escape(item.question)}[/]"
    if show_answer:
        body += f"\n\n[green]{escape(item.answer)}[/]"
    return Panel(
        body,
        title=f"#{item.id}",
        subtitle=f"strength {item.memory.strength:.2f} | stability {item.memory.stability:.1f}d",
        border_style=item.status.color,
    )


# =============================================================================
# Card Commands
# =============================================================================


@app.command()
def init(ctx: typer.Context) -> None:
    """Create the database if it does not exist."""
    with workspace(ctx) as ws:
        console.print(f"[green]Database ready:[/] {ws.settings.resolved_database_url}")


@app.command()
def add(
    ctx: typer.Context,
    question: Annotated[str, typer.Argument(help="Card prompt")],
    answer: Annotated[str, typer.Argument(help="Card answer")] = "",
    topic: Annotated[int | None, typer.Option("--topic", "-t", help="Topic id")] = None,
    activate: Annotated[
        bool, typer.Option("--activate", "-a", help="Queue the card for review now")
    ] = False,
) -> None:
    """Add a card (created as initiated unless --activate)."""
    with workspace(ctx) as ws:
        now = _now()
        item = ws.scheduler.create_item(question, answer, topic_id=topic, now=now)
        if activate:
            item = ws.scheduler.activate(item.id, now)
        console.print(f"[green]Added card #{item.id}[/] ({item.status.value})")


@app.command()
def activate(ctx: typer.Context, item_id: Annotated[int, typer.Argument(help="Card id")]) -> None:
    """Queue an initiated card for review."""
    with workspace(ctx) as ws:
        item = ws.scheduler.activate(item_id, _now())
        console.print(f"Card #{item.id} is {item.status.value}")


@app.command()
def depend(
    ctx: typer.Context,
    dependent: Annotated[int, typer.Argument(help="Card that must wait")],
    dependency: Annotated[int, typer.Argument(help="Card it waits for")],
) -> None:
    """Make a card wait until another card is resolved."""
    with workspace(ctx) as ws:
        ws.scheduler.add_edge(dependent, dependency)
        console.print(f"[green]#{dependent} now depends on #{dependency}[/]")


@app.command()
def undepend(
    ctx: typer.Context,
    dependent: Annotated[int, typer.Argument(help="Dependent card")],
    dependency: Annotated[int, typer.Argument(help="Dependency card")],
) -> None:
    """Remove a dependency."""
    with workspace(ctx) as ws:
        ws.scheduler.remove_edge(dependent, dependency)
        console.print(f"#{dependent} no longer depends on #{dependency}")


@app.command()
def grade(
    ctx: typer.Context,
    item_id: Annotated[int, typer.Argument(help="Card id")],
    value: Annotated[int, typer.Argument(help="Grade 0-5")],
) -> None:
    """Grade a due card without the interactive loop."""
    with workspace(ctx) as ws:
        outcome = ws.scheduler.grade_review(item_id, value, _now())
        item = outcome.item
        console.print(
            f"Card #{item.id}: [{item.status.color}]{item.status.value}[/], "
            f"next due {item.next_due:%Y-%m-%d %H:%M}"
        )


@app.command()
def review(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option("--cards", "-n", help="Maximum cards to review")] = 50,
) -> None:
    """Review due cards interactively."""
    with workspace(ctx) as ws:
        reviewed = 0
        while reviewed < limit:
            now = _now()
            item = ws.scheduler.next_due_item(now)
            if item is None:
                pending = ws.scheduler.pending_resolution(now)
                if not pending:
                    break
                item = pending[0]
                console.print("[cyan]Confirm a completed card:[/]")

            console.print(_item_panel(item))
            shown = _now()
            if Prompt.ask("[dim]Enter to reveal, q to quit[/]", default="") == "q":
                break
            console.print(_item_panel(item, show_answer=True))
            value = IntPrompt.ask("Grade", choices=[str(g) for g in range(6)])
            latency_ms = int((_now() - shown).total_seconds() * 1000)
            outcome = ws.scheduler.grade_review(item.id, value, _now(), latency_ms=latency_ms)
            if outcome.status_changed:
                console.print(f"[green]Card #{item.id} is now {outcome.item.status.value}[/]")
            reviewed += 1

        if reviewed == 0:
            console.print("[yellow]No cards due for review.[/]")
        else:
            console.print(f"[green]Reviewed {reviewed} card(s).[/]")


@app.command()
def suspend(
    ctx: typer.Context,
    item_id: Annotated[int, typer.Argument(help="Card id")],
    days: Annotated[float, typer.Option("--days", "-d", help="Skip for this many days")] = 1.0,
    indefinite: Annotated[
        bool, typer.Option("--indefinite", help="Suspend until unsuspended")
    ] = False,
) -> None:
    """Skip a card for a while, or suspend it indefinitely."""
    with workspace(ctx) as ws:
        if indefinite:
            ws.scheduler.set_suspended(item_id, True)
            console.print(f"Card #{item_id} suspended")
        else:
            ws.scheduler.suspend(item_id, timedelta(days=days), _now())
            console.print(f"Card #{item_id} skipped for {days:g} day(s)")


@app.command()
def unsuspend(ctx: typer.Context, item_id: Annotated[int, typer.Argument(help="Card id")]) -> None:
    """Clear a skip or suspension."""
    with workspace(ctx) as ws:
        ws.scheduler.unsuspend(item_id)
        console.print(f"Card #{item_id} is back in rotation")


@app.command()
def status(ctx: typer.Context) -> None:
    """Show card counts and what is due."""
    with workspace(ctx) as ws:
        now = _now()
        items = ws.store.load_items()
        counts = {s: 0 for s in ItemStatus}
        for item in items:
            counts[item.status] += 1

        table = Table(title="mnemo status")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        for s in ItemStatus:
            table.add_row(s.value.title(), str(counts[s]))
        table.add_row("Suspended", str(sum(1 for i in items if i.suspended)))
        table.add_row("Due now", str(ws.scheduler.due_count(now)))
        table.add_row("Awaiting resolution", str(len(ws.scheduler.pending_resolution(now))))
        table.add_row("Dependencies", str(len(ws.scheduler.graph)))
        table.add_row("Active reading", str(len(ws.reading.queue())))
        console.print(table)


# =============================================================================
# Topic Commands
# =============================================================================


@topic_app.command("add")
def topic_add(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Topic name")],
    parent: Annotated[int | None, typer.Option("--parent", "-p", help="Parent topic id")] = None,
) -> None:
    """Add a topic."""
    with workspace(ctx) as ws:
        topic = ws.topics.add_topic(name, parent_id=parent)
        console.print(f"[green]Added topic #{topic.id}[/] {ws.topics.tree.path(topic.id)}")


@topic_app.command("list")
def topic_list(ctx: typer.Context) -> None:
    """Show the topic tree."""
    with workspace(ctx) as ws:
        root = Tree("[bold]Topics[/]")
        nodes = {None: root}
        for _, topic in ws.topics.tree.walk():
            nodes[topic.id] = nodes[topic.parent_id].add(f"#{topic.id} {topic.name}")
        console.print(root)


# =============================================================================
# Reading Commands
# =============================================================================


@read_app.command("add")
def read_add(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="Text file to read")],
    topic: Annotated[int | None, typer.Option("--topic", "-t", help="Topic id")] = None,
    title: Annotated[str | None, typer.Option("--title", help="Title (default: file name)")] = None,
) -> None:
    """Add a text file as a reading source."""
    if not file.exists():
        console.print(f"[red]File not found: {file}[/]")
        raise typer.Exit(1)
    with workspace(ctx) as ws:
        reading = ws.reading.add_source(
            file.read_text(encoding="utf-8"), topic_id=topic, title=title or file.stem
        )
        console.print(f"[green]Added reading #{reading.id}[/] {reading.title}")


@read_app.command("next")
def read_next(ctx: typer.Context) -> None:
    """Show the next reading item in rotation."""
    with workspace(ctx) as ws:
        reading = ws.reading.next_due_reading(_now())
        if reading is None:
            console.print("[yellow]Nothing to read.[/]")
            return
        console.print(
            Panel(escape(reading.source), title=escape(f"#{reading.id} {reading.title}"), border_style="cyan")
        )


@read_app.command("excerpt")
def read_excerpt(
    ctx: typer.Context,
    reading_id: Annotated[int, typer.Argument(help="Reading item id")],
    start: Annotated[int, typer.Argument(help="Start offset")],
    end: Annotated[int, typer.Argument(help="End offset (exclusive)")],
) -> None:
    """Cut an excerpt out of a reading item."""
    with workspace(ctx) as ws:
        child = ws.reading.excerpt(reading_id, (start, end))
        console.print(f"[green]Excerpt #{child.id}[/] {escape(repr(child.source))}")


@read_app.command("promote")
def read_promote(
    ctx: typer.Context,
    reading_id: Annotated[int, typer.Argument(help="Reading item id")],
    question: Annotated[str | None, typer.Option("--question", "-q", help="Card prompt")] = None,
    answer: Annotated[str, typer.Option("--answer", "-a", help="Card answer")] = "",
    depends_on: Annotated[
        int | None, typer.Option("--depends-on", help="Card the new card waits for")
    ] = None,
) -> None:
    """Turn a reading item into a card."""
    with workspace(ctx) as ws:
        item = ws.reading.promote(
            reading_id, question=question, answer=answer, dependency=depends_on, now=_now()
        )
        console.print(f"[green]Promoted reading #{reading_id} to card #{item.id}[/]")


@read_app.command("done")
def read_done(ctx: typer.Context, reading_id: Annotated[int, typer.Argument(help="Reading item id")]) -> None:
    """Retire a fully processed reading item."""
    with workspace(ctx) as ws:
        ws.reading.mark_done(reading_id)
        console.print(f"Reading #{reading_id} retired")


# =============================================================================
# Entry Point
# =============================================================================


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output")] = False,
    database: Annotated[
        str | None, typer.Option("--db", help="Database URL override")
    ] = None,
) -> None:
    """
    mnemo - spaced repetition with prerequisites and incremental reading
    """
    settings = get_settings()
    if database:
        # Only this invocation sees the override
        settings = settings.model_copy(update={"database_url": database})
    ctx.obj = settings

    configure_logging("DEBUG" if verbose else settings.log_level)


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
