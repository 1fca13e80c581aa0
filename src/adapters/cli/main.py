"""
adapters.cli.main - CLI adapter for the MindKeep note agent.

Uses the same ServiceFactory and AgentExecutor as the REST API so all
behaviour (tool selection, extraction, memory, budgets) is identical.

Commands
--------
  init    Create the note store schema
  add     Save a note (suggests a category when none is given)
  notes   List stored notes
  ask     One-shot question against your notes
  chat    Interactive session (supports /history, /clear, /usage)

Usage
-----
  python src/adapters/cli/main.py add "Netflix" "password: S3cr3t!"
  python src/adapters/cli/main.py ask "what's my netflix password?"
  python src/adapters/cli/main.py chat
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

# ── Ensure src/ is on the path ──
_SRC = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(_SRC))

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from application.context import SessionContext
from domain.models import AgentResponse, ToolCall, ToolKind
from factory import ServiceFactory
from infrastructure.config import Settings
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.migrations import run_migrations

__version__ = "1.0.0"

console = Console()
app = typer.Typer(
    help="MindKeep note agent CLI",
    add_completion=False,
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

async def _make_factory() -> ServiceFactory:
    factory = ServiceFactory(Settings.from_env())
    with console.status("[bold cyan]Loading note agent…", spinner="dots"):
        await factory.initialize()
    return factory


def _render_response(response: AgentResponse) -> None:
    style = "green" if response.ok else "red"
    body = response.narrative
    if response.extracted_data:
        body += f"\n\n[bold]{response.data_type.value}:[/bold] {response.extracted_data}"
    console.print(Panel(body, title="MindKeep", border_style=style))

    if response.suggested_actions:
        t = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
        t.add_column("Action", style="bold")
        t.add_column("Data")
        for action in response.suggested_actions:
            t.add_row(action.label, action.data)
        console.print(t)

    for warning in response.warnings:
        console.print(f"[bold yellow]⚠ {warning}[/bold yellow]")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"mindkeep v{__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Commands: Notes
# ---------------------------------------------------------------------------

@app.command()
def init() -> None:
    """Create the note store schema. Safe to run more than once."""

    async def _run() -> None:
        config = Settings.from_env()
        await run_migrations(AsyncSQLiteConnection(config.db_path))
        console.print(Panel(
            f"[bold green]Note store ready[/bold green] at [bold]{config.db_path}[/bold].\n"
            "Run [bold]add[/bold] to save a note, then [bold]ask[/bold] or [bold]chat[/bold].",
            border_style="green",
        ))

    asyncio.run(_run())


@app.command()
def add(
    title: str = typer.Argument(..., help="Note title."),
    content: str = typer.Argument(..., help="Plain-text note content."),
    category: Optional[str] = typer.Option(
        None, "--category", "-c",
        help="Category. When omitted the closest existing category is used.",
    ),
) -> None:
    """Save a new note."""

    async def _run() -> None:
        factory = await _make_factory()

        chosen = category
        if not chosen:
            existing = await factory.note_store.list_categories()
            suggester = factory.create_category_suggester()
            suggestions = await suggester.suggest(f"{title}\n{content}", existing)
            if suggestions:
                chosen = suggestions[0][0]
                console.print(f"[dim]Suggested category: {chosen} ({suggestions[0][1]:.2f})[/dim]")
            else:
                chosen = "general"

        ctx = SessionContext(session_id="cli", read_only=False)
        [result] = await factory.create_tool_executor().execute(
            [ToolCall(ToolKind.CREATE_NOTE.value, {"title": title, "content": content, "category": chosen})],
            ctx,
        )
        if not result.ok:
            console.print(f"[bold red]Could not save note:[/bold red] {result.error}")
            raise typer.Exit(code=1)
        console.print(f"[bold green]{result.result['message']}[/bold green] ({result.result['noteId']})")

    asyncio.run(_run())


@app.command()
def notes() -> None:
    """List stored notes, newest first."""

    async def _run() -> None:
        factory = await _make_factory()
        stored = await factory.note_store.list_notes()

        if not stored:
            console.print("[dim]No notes yet. Run [bold]add[/bold] to create one.[/dim]")
            return

        t = Table(box=box.SIMPLE, padding=(0, 2))
        t.add_column("ID", style="dim")
        t.add_column("Title", style="bold")
        t.add_column("Category")
        t.add_column("Embedded")
        for note in stored:
            t.add_row(note.id, note.title, note.category, "yes" if note.has_embedding else "no")
        console.print(Panel(t, title=f"Notes ({len(stored)})", border_style="blue"))

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Commands: Agent
# ---------------------------------------------------------------------------

@app.command()
def ask(
    query: str = typer.Argument(..., help="Your question about your notes."),
) -> None:
    """Ask a one-shot question."""

    async def _run() -> None:
        factory = await _make_factory()
        agent = factory.create_agent()
        with console.status("[bold cyan]Thinking…", spinner="dots"):
            response = await agent.run(query)
        _render_response(response)
        await factory.shutdown()

    asyncio.run(_run())


@app.command()
def chat(
    stream: bool = typer.Option(False, "--stream", "-s", help="Stream replies as text."),
) -> None:
    """Start an interactive chat session."""

    async def _run() -> None:
        factory = await _make_factory()
        session_id = await factory.sessions.create_session()
        agent = factory.create_agent(session_id)

        console.print(Panel(
            "[bold]MindKeep Chat[/bold]\n"
            "Ask about your notes. [bold]/history[/bold], [bold]/clear[/bold] and "
            "[bold]/usage[/bold] are available; [bold]exit[/bold] / [bold]quit[/bold] to stop.",
            border_style="cyan",
        ))

        while True:
            try:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
            except (KeyboardInterrupt, EOFError):
                console.print("\n[dim]Goodbye![/dim]")
                break

            if user_input.strip().lower() in ("exit", "quit", "q", "bye"):
                console.print("[dim]Goodbye![/dim]")
                break
            if not user_input.strip():
                continue

            if user_input.strip().lower() == "/usage":
                usage = factory.sessions.get_usage(session_id)
                console.print(
                    f"[bold]{usage.usage}/{usage.quota}[/bold] tokens ({usage.percentage:.1f}%)"
                )
                if factory.sessions.should_clear(session_id):
                    console.print("[yellow]Consider /clear or a new chat to reclaim budget.[/yellow]")
                continue

            if stream:
                console.print()
                async for chunk in agent.run_streaming(user_input):
                    console.print(chunk, end="")
                console.print()
                continue

            with console.status("[bold cyan]Thinking…", spinner="dots"):
                response = await agent.run(user_input)
            console.print()
            _render_response(response)

        await factory.shutdown()

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------

@app.callback()
def _callback(
    version: bool = typer.Option(
        False, "--version", "-v",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log at DEBUG level."),
) -> None:
    """MindKeep note agent CLI"""
    _configure_logging("DEBUG" if verbose else Settings.from_env().log_level)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
