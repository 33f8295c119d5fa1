#!/usr/bin/env python3
"""
Slash Command Console
=====================

Text front-end for the command resolution engine.

Usage:
    python main.py                      # Interactive mode
    python main.py --once "/gut status" # Resolve one line and exit
    python main.py --suggest "/gi"      # Print suggestions and exit
    python main.py --help               # Show help
"""

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is in path
sys.path.insert(0, str(Path(__file__).parent))

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from adapters import (
    ConsoleConfirmer, ConsoleReporter,
    bind_console_handlers, render_outcome, render_suggestions,
)
from commands import CommandRegistry
from core import CommandEngine
from infra import EngineConfig, configure_logging

console = Console()

PROJECT_DIR = Path(__file__).parent


def _project_path(path: str) -> Path:
    """Relative paths that don't exist from cwd are tried against the project dir."""
    candidate = Path(path)
    if candidate.is_absolute() or candidate.exists():
        return candidate
    return PROJECT_DIR / candidate


def build_engine(config: EngineConfig) -> CommandEngine:
    registry = CommandRegistry()
    registry.load_catalog(_project_path(config.catalog_path))
    bind_console_handlers(registry, console, trigger=config.trigger_chars[:1])
    return CommandEngine(
        registry,
        config=config,
        confirm=ConsoleConfirmer(console),
        report_error=ConsoleReporter(console),
        environment={"host": "console"},
    )


def print_banner(engine: CommandEngine) -> None:
    status = engine.get_status()
    banner = Text()
    banner.append("Slash Commands", style="bold cyan")
    banner.append(" - multilingual command console\n", style="dim")
    banner.append(f"{status['commands_loaded']} commands, {status['intents_loaded']} phrases\n\n", style="green")
    banner.append("Type ", style="dim")
    banner.append("/help", style="bold green")
    banner.append(" for commands, ", style="dim")
    banner.append("?text", style="bold green")
    banner.append(" for suggestions, ", style="dim")
    banner.append("quit", style="bold red")
    banner.append(" to exit", style="dim")
    console.print(Panel(banner, title="Welcome", border_style="blue"))


def run_interactive(engine: CommandEngine) -> None:
    print_banner(engine)
    trigger = engine.config.trigger_chars[:1]

    while True:
        try:
            text = console.input("\n[bold cyan]>[/bold cyan] ").strip()
        except (KeyboardInterrupt, EOFError):
            break

        if not text:
            continue
        if text.lower() in ("quit", "exit", "q"):
            break
        if text.startswith("?"):
            render_suggestions(console, engine.get_suggestions(text[1:] or trigger))
            continue

        outcome = engine.resolve_and_dispatch(text)
        render_outcome(console, outcome, trigger)

    console.print("\n[yellow]Shutting down...[/yellow]")


def main() -> int:
    parser = argparse.ArgumentParser(description="Slash command console")
    parser.add_argument(
        "--config", "-c",
        default="config.yaml",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-level", "-l",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (overrides config)",
    )
    parser.add_argument("--once", metavar="TEXT", help="Resolve a single line and exit")
    parser.add_argument("--suggest", metavar="TEXT", help="Print suggestions for partial input and exit")
    parser.add_argument("--no-log-file", action="store_true", help="Log to the console only")

    args = parser.parse_args()

    config = EngineConfig.load(str(_project_path(args.config)))
    level = args.log_level or config.log_level
    configure_logging(
        level=getattr(logging, level, logging.INFO),
        console=True,
        file=not args.no_log_file,
    )
    logger = logging.getLogger("slash.main")

    try:
        engine = build_engine(config)

        if args.suggest is not None:
            render_suggestions(console, engine.get_suggestions(args.suggest))
            return 0

        if args.once is not None:
            outcome = engine.resolve_and_dispatch(args.once)
            render_outcome(console, outcome, config.trigger_chars[:1])
            return 0 if outcome.succeeded else 1

        run_interactive(engine)
        return 0

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except Exception as e:
        logger.exception("Fatal error")
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
