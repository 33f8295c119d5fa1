"""
Built-in handlers for the console host.

Real command implementations (version control, vault, tickets, LLM)
live outside the engine; the console binds these stand-ins instead.
"""

from typing import Callable, List

from rich.console import Console

from commands.registry import CommandContext, CommandRegistry
from commands.suggestions import SuggestionRanker

from .console import render_suggestions


def make_help_handler(registry: CommandRegistry, console: Console, trigger: str = "/") -> Callable:
    ranker = SuggestionRanker(registry, trigger_chars=trigger)

    def handle_help(context: CommandContext) -> None:
        query = context.args[0] if context.args else ""
        render_suggestions(console, ranker.get_suggestions(f"{trigger}{query}"), title="Available commands")

    return handle_help


def make_clear_handler(console: Console) -> Callable:
    def handle_clear(context: CommandContext) -> None:
        console.clear()

    return handle_clear


def make_echo_handler(name: str, console: Console) -> Callable:
    def handle_echo(context: CommandContext) -> None:
        args = " ".join(context.args)
        console.print(f"[green]→ {name}[/green] {args}".rstrip())

    return handle_echo


def model_completions(models: List[str]) -> Callable[[str], List[str]]:
    """Completion provider over a fixed list of model ids."""
    def provide(partial: str) -> List[str]:
        partial = partial.lower()
        return [m for m in models if m.lower().startswith(partial)]

    return provide


def bind_console_handlers(registry: CommandRegistry, console: Console, trigger: str = "/") -> None:
    """Give every registered command a console handler."""
    for command in registry.all_commands():
        registry.bind_handler(command.name, make_echo_handler(command.name, console))

    if registry.get_command("help"):
        registry.bind_handler("help", make_help_handler(registry, console, trigger))
    if registry.get_command("clear"):
        registry.bind_handler("clear", make_clear_handler(console))
    if registry.get_command("model"):
        registry.bind_handler(
            "model",
            make_echo_handler("model", console),
            completion_provider=model_completions(["gpt-4o", "gemini-pro", "llama4-maverick"]),
        )
