"""
Test Configuration
------------------
Shared fixtures and configuration for all tests.
"""

import sys
from pathlib import Path
from typing import List

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from commands.registry import Command, CommandContext, CommandRegistry, SubCommand  # noqa: E402
from core.engine import CommandEngine  # noqa: E402


# =============================================================================
# Test Isolation: Block Side Effects
# =============================================================================

@pytest.fixture(autouse=True)
def block_console_prompts(monkeypatch):
    """
    Block interactive rich prompts during tests.

    Confirmation must always come from an injected callable; a test
    that reaches a real prompt would otherwise hang waiting on stdin.
    """
    from rich.prompt import Confirm

    def _blocked(*args, **kwargs):
        raise RuntimeError(
            "Interactive prompts are forbidden during tests. "
            "Inject a confirm callable instead."
        )

    monkeypatch.setattr(Confirm, "ask", _blocked)


# =============================================================================
# Recording capabilities
# =============================================================================

class RecordingConfirm:
    """confirm(prompt) that answers a fixed value and remembers prompts."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.prompts: List[str] = []

    def __call__(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer


class RecordingReporter:
    """report_error(message) that remembers messages."""

    def __init__(self):
        self.messages: List[str] = []

    def __call__(self, message: str) -> None:
        self.messages.append(message)


class RecordingHandler:
    """Handler that records every context it receives."""

    def __init__(self, name: str):
        self.name = name
        self.calls: List[CommandContext] = []

    def __call__(self, context: CommandContext) -> None:
        self.calls.append(context)


# =============================================================================
# Sample registry
# =============================================================================

SAMPLE_INTENTS = {
    "뭐해야해": "help",
    "도와줘": "help",
    "할일추가": "todo add",
    "할일": "todo",
    "메모": "memory",
    "기억해": "memory",
    "볼트": "vault",
    "볼트목록": "vault list",
}


def build_sample_registry() -> CommandRegistry:
    registry = CommandRegistry()
    commands = [
        Command(
            name="help", description="Show help", category="general", priority=1,
            aliases=("?", "commands"), examples=("/help", "/help git"),
            localized_name="도움말",
        ),
        Command(name="clear", description="Clear chat", category="general", priority=2, aliases=("cls",)),
        Command(
            name="git", description="Version control", category="git", priority=3,
            aliases=("vcs",),
            subcommands=(
                SubCommand("status", "Show status"),
                SubCommand("commit", "Commit changes"),
                SubCommand("push", "Push"),
                SubCommand("pull", "Pull"),
            ),
        ),
        Command(
            name="todo", description="Manage todos", category="utility", priority=8,
            aliases=("task",), localized_name="할일",
            subcommands=(SubCommand("add", "Add item"), SubCommand("list", "List items")),
        ),
        Command(
            name="memory", description="Remember things", category="general", priority=6,
            aliases=("mem",), localized_name="메모리",
        ),
        Command(name="vault", description="Context vault", category="utility", priority=12),
        Command(
            name="model", description="Switch model", category="advanced", priority=10,
            completion_provider=lambda partial: [m for m in ("gpt-4o", "gemini-pro") if m.startswith(partial)],
        ),
    ]
    for command in commands:
        registry.register(command)
    registry.register_intents(SAMPLE_INTENTS)
    return registry


@pytest.fixture(scope="session")
def project_root():
    """Return the project root path."""
    return PROJECT_ROOT


@pytest.fixture
def catalog_path(project_root):
    return project_root / "commands" / "command_map.yaml"


@pytest.fixture
def registry():
    return build_sample_registry()


@pytest.fixture
def handlers(registry):
    """Recording handler bound to every sample command."""
    bound = {}
    for command in registry.all_commands():
        bound[command.name] = RecordingHandler(command.name)
        registry.bind_handler(command.name, bound[command.name])
    return bound


@pytest.fixture
def confirm():
    return RecordingConfirm(answer=True)


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def engine(registry, handlers, confirm, reporter):
    return CommandEngine(registry, confirm=confirm, report_error=reporter, environment={"host": "test"})
