"""Rich formatting helpers for the Quarry CLI.

Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from quarry.followups import Followup
    from quarry.models.content import Segment, ToolCallSegment
    from quarry.orchestrator.models import RunResult


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def stream_text(text: str, console: Console) -> None:
    """Print a streamed text chunk without a trailing newline."""
    console.print(text, end="", markup=False, highlight=False, soft_wrap=True)


def format_progress(message: str, console: Console) -> None:
    console.print(f"\n[dim]{escape(message)}[/dim]", highlight=False)


def format_tool_result(call: ToolCallSegment, segments: list[Segment], console: Console) -> None:
    """Show a tool's text output under a header naming the tool."""
    from quarry.models.content import BinarySegment, TextSegment

    console.print(f"[cyan]{escape(call.name)}[/cyan] [dim]({call.id})[/dim]", highlight=False)
    for seg in segments:
        if isinstance(seg, TextSegment):
            style = "red" if seg.text.startswith("Error:") else None
            console.print(seg.text, style=style, markup=False, highlight=False)
        elif isinstance(seg, BinarySegment):
            console.print(f"[dim]<{seg.mime_type}, {len(seg.data)} bytes>[/dim]")


def format_run_summary(result: RunResult, console: Console) -> None:
    """Display how the run ended, its rounds and discovered directories."""
    console.print()
    state = result.state.value
    colour = {"done": "green", "exhausted": "yellow", "cancelled": "yellow"}.get(state, "red")
    console.print(
        f"[{colour}]{state}[/{colour}] after {result.rounds} tool round(s), "
        f"{result.total_tool_calls} tool call(s)",
        highlight=False,
    )
    if result.metadata.side_effect_directories:
        table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
        table.add_column("Screenshot directories", style="yellow")
        for directory in sorted(result.metadata.side_effect_directories):
            table.add_row(escape(directory))
        console.print(table)


def format_followups(followups: list[Followup], console: Console) -> None:
    if not followups:
        return
    console.print()
    console.print("[bold]Suggested follow-ups:[/bold]")
    for i, followup in enumerate(followups, 1):
        console.print(f"  {i}. {escape(followup.label)}", highlight=False)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
