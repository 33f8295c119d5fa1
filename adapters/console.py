"""
Console Adapter
---------------
Rich-based implementations of the host capabilities the engine needs:
confirmation, error reporting and suggestion rendering.
"""

from typing import Iterable, Optional

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from commands.suggestions import Suggestion
from core.engine import OutcomeStatus, ResolutionOutcome


class ConsoleConfirmer:
    """confirm(prompt) -> bool backed by a y/n prompt."""

    def __init__(self, console: Optional[Console] = None, default: bool = True):
        self.console = console or Console()
        self.default = default

    def __call__(self, prompt: str) -> bool:
        return Confirm.ask(prompt, console=self.console, default=self.default)


class ConsoleReporter:
    """report_error(message) that prints to the console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def __call__(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {message}")


def render_suggestions(console: Console, suggestions: Iterable[Suggestion], title: str = "Commands") -> None:
    """Print suggestions as a table."""
    table = Table(title=title, show_lines=False)
    table.add_column("Command", style="bold cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Category", style="dim")

    rows = 0
    for suggestion in suggestions:
        description = suggestion.description
        if suggestion.detail:
            description = f"{description}\n[dim]{suggestion.detail}[/dim]"
        table.add_row(suggestion.label, description, suggestion.category)
        rows += 1

    if rows:
        console.print(table)
    else:
        console.print("[dim]No matching commands[/dim]")


def render_outcome(console: Console, outcome: ResolutionOutcome, trigger: str = "/") -> None:
    """One-line summary of what happened to a submitted line."""
    if outcome.status == OutcomeStatus.CORRECTED_AND_EXECUTED:
        console.print(
            f"[yellow]Ran {trigger}{outcome.command.name} "
            f"(corrected from {trigger}{outcome.original_token})[/yellow]"
        )
    elif outcome.status == OutcomeStatus.SUGGESTIONS_OFFERED:
        names = ", ".join(f"{trigger}{c.name}" for c in outcome.candidates)
        console.print(f"[yellow]Unknown command {trigger}{outcome.original_token}. Did you mean: {names}?[/yellow]")
    elif outcome.status == OutcomeStatus.EXECUTED and outcome.tier != "exact":
        console.print(f"[dim]Matched {trigger}{outcome.command.name} via {outcome.tier}[/dim]")

    if outcome.error is not None:
        console.print(f"[dim]Details logged under {outcome.turn_id}[/dim]")
