"""
Logging helpers: coloured, timestamped console output with rich sections.

Every message goes through a shared ``rich`` console, which serialises
writes so per-project chains running on worker threads do not interleave
half-lines.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from runner import ProjectOutcome

_console     = Console()
_console_err = Console(stderr=True)
_verbose     = False


def _ts() -> str:
    return datetime.now().strftime("%H:%M:%S")


def section(title: str) -> None:
    _console.rule(f"[bold cyan]{title}[/bold cyan]")


def info(msg: str) -> None:
    _console.print(f"[dim]{_ts()}[/dim]  [blue]ℹ[/blue]  {escape(msg)}", highlight=False)


def success(msg: str) -> None:
    _console.print(f"[dim]{_ts()}[/dim]  [bold green]✔[/bold green]  {escape(msg)}", highlight=False)


def warn(msg: str) -> None:
    _console.print(f"[dim]{_ts()}[/dim]  [bold yellow]⚠[/bold yellow]  {escape(msg)}", highlight=False)


def error(msg: str) -> None:
    _console_err.print(f"[dim]{_ts()}[/dim]  [bold red]✖[/bold red]  {escape(msg)}", highlight=False)


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def debug(msg: str) -> None:
    """Printed only with --verbose."""
    if _verbose:
        _console.print(f"[dim]{_ts()}  ·  {escape(msg)}[/dim]", highlight=False)


def step(index: int, total: int, msg: str) -> None:
    label = f"[{index}/{total}]"
    _console.print(f"[dim]{_ts()}[/dim]  [bold magenta]{label}[/bold magenta]  {escape(msg)}")


def banner(title: str, subtitle: str = "") -> None:
    text = Text(title, style="bold cyan")
    if subtitle:
        text.append(f"\n{subtitle}", style="dim")
    _console.print(Panel(text, border_style="cyan"))


def duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    m, s = divmod(int(seconds), 60)
    return f"{m}m{s:02d}s"


def table(title: str, columns: Iterable[str], rows: Iterable[Iterable[str]]) -> None:
    """Print a simple table; first column is the project/key column."""
    tbl = Table(title=title, show_lines=False)
    for i, column in enumerate(columns):
        if i == 0:
            tbl.add_column(column, style="bold cyan", no_wrap=True)
        else:
            tbl.add_column(column, overflow="fold")
    for row in rows:
        tbl.add_row(*(escape(str(cell)) for cell in row))
    _console.print(tbl)


_MARKS = {
    "ok":      "[green]✔[/green]",
    "failed":  "[red]✖[/red]",
    "skipped": "[dim]–[/dim]",
    "n/a":     "[dim]n/a[/dim]",
}


def summary(outcomes: Iterable["ProjectOutcome"]) -> None:
    """
    Render the per-project outcome table printed at the end of every run.

    Columns are configured / generated / published; failures name the
    project step that broke.
    """
    tbl = Table(title="Build Summary", show_lines=True)
    tbl.add_column("Project",    style="bold cyan", no_wrap=True)
    tbl.add_column("Configured", justify="center")
    tbl.add_column("Generated",  justify="center")
    tbl.add_column("Published",  justify="center")
    tbl.add_column("Failure",    style="red", overflow="fold")
    for outcome in outcomes:
        failure = ""
        if outcome.failed_step:
            failure = f"{outcome.failed_step}: {outcome.failure}"
        tbl.add_row(
            escape(outcome.name),
            _MARKS[outcome.configured],
            _MARKS[outcome.generated],
            _MARKS[outcome.published],
            escape(failure),
        )
    _console.print(tbl)
