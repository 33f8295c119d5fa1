"""
Command Registry
----------------
Canonical command records, their aliases and the phrase -> command
intent table. Pure in-memory store, populated once at startup.

No host UI. No handler execution. Only storage and exact lookup.

Invariants enforced at registration:
- no two commands share a name
- no alias is shared by two commands
- no alias collides with another command's name
- an intent phrase maps to exactly one target
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union
import logging
import re
import threading

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import CatalogError, DuplicateRegistrationError

DEFAULT_PRIORITY = 100

_WHITESPACE = re.compile(r"\s+")


def normalize_phrase(text: str) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    return _WHITESPACE.sub(" ", text.strip().lower())


def normalize_token(token: str) -> str:
    return token.strip().lower()


class CommandCategory(str, Enum):
    """Closed set of command categories."""
    GENERAL = "general"
    GIT = "git"
    CODE = "code"
    UTILITY = "utility"
    ADVANCED = "advanced"


@dataclass
class CommandContext:
    """What a handler receives."""
    args: List[str]
    original_input: str
    environment: Dict[str, Any] = field(default_factory=dict)


Handler = Callable[[CommandContext], Union[None, Awaitable[None]]]
CompletionProvider = Callable[[str], List[str]]


@dataclass(frozen=True)
class SubCommand:
    """One entry of a command's fixed sub-command vocabulary."""
    name: str
    description: str = ""


def _unbound_handler(name: str) -> Handler:
    """Placeholder until the host binds a real handler."""
    logger = logging.getLogger("slash.commands.registry")

    def placeholder(context: CommandContext) -> None:
        logger.warning(f"No handler bound for '{name}' (args={context.args})")

    return placeholder


@dataclass
class Command:
    """
    A registered command.

    Localized name and aliases are resolvable as ordinary aliases and
    are also entered into the intent table for free-text matching.
    """
    name: str
    description: str
    category: CommandCategory = CommandCategory.GENERAL
    aliases: Tuple[str, ...] = ()
    priority: int = DEFAULT_PRIORITY
    handler: Optional[Handler] = None
    completion_provider: Optional[CompletionProvider] = None
    examples: Tuple[str, ...] = ()
    subcommands: Tuple[SubCommand, ...] = ()
    localized_name: Optional[str] = None
    localized_aliases: Tuple[str, ...] = ()
    localized_description: Optional[str] = None

    def __post_init__(self) -> None:
        self.name = normalize_token(self.name)
        if not self.name:
            raise ValueError("Command name must not be empty")
        self.category = CommandCategory(self.category)
        self.aliases = tuple(self.aliases)
        self.examples = tuple(self.examples)
        self.subcommands = tuple(self.subcommands)
        self.localized_aliases = tuple(self.localized_aliases)
        if self.handler is None:
            self.handler = _unbound_handler(self.name)

    @property
    def all_aliases(self) -> Tuple[str, ...]:
        """Every secondary string that resolves to this command."""
        extra = (self.localized_name,) if self.localized_name else ()
        return tuple(self.aliases) + extra + tuple(self.localized_aliases)

    @property
    def has_fixed_subcommands(self) -> bool:
        return bool(self.subcommands)

    def __repr__(self) -> str:
        return f"Command(name={self.name}, category={self.category.value})"


@dataclass(frozen=True)
class IntentEntry:
    """A free-text phrase mapped to a command, with optional fixed args."""
    phrase: str
    target: str
    order: int

    @property
    def command_name(self) -> str:
        return self.target.split()[0]

    @property
    def fixed_args(self) -> List[str]:
        return self.target.split()[1:]

    @property
    def compact_phrase(self) -> str:
        return _WHITESPACE.sub("", self.phrase)


# =============================================================================
# Catalog schema (versioned YAML data file)
# =============================================================================

class SubCommandSchema(BaseModel):
    name: str
    description: str = ""


class LocalizedSchema(BaseModel):
    name: Optional[str] = None
    aliases: List[str] = Field(default_factory=list)
    description: Optional[str] = None


class CommandSchema(BaseModel):
    """One command entry in the catalog file."""
    name: str
    description: str
    category: CommandCategory = CommandCategory.GENERAL
    aliases: List[str] = Field(default_factory=list)
    priority: int = DEFAULT_PRIORITY
    examples: List[str] = Field(default_factory=list)
    subcommands: List[SubCommandSchema] = Field(default_factory=list)
    localized: Optional[LocalizedSchema] = None

    def to_command(self) -> Command:
        localized = self.localized or LocalizedSchema()
        return Command(
            name=self.name,
            description=self.description,
            category=self.category,
            aliases=tuple(self.aliases),
            priority=self.priority,
            examples=tuple(self.examples),
            subcommands=tuple(SubCommand(s.name, s.description) for s in self.subcommands),
            localized_name=localized.name,
            localized_aliases=tuple(localized.aliases),
            localized_description=localized.description,
        )


class CatalogSchema(BaseModel):
    """Top-level catalog document."""
    version: int = 1
    commands: List[CommandSchema] = Field(default_factory=list)
    intents: Dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Registry
# =============================================================================

class CommandRegistry:
    """
    Registry of commands, aliases and intent phrases.

    Responsibilities:
    - Checked registration (typed error instead of silent overwrite)
    - Exact lookup by name or alias
    - Intent table in explicit specificity order

    Writes take a lock; reads do not. The registry is meant to be
    filled at startup and read-only afterwards.
    """

    def __init__(self):
        self._commands: Dict[str, Command] = {}
        self._alias_map: Dict[str, str] = {}
        self._intents: Dict[str, IntentEntry] = {}
        self._by_specificity: List[IntentEntry] = []
        self._write_lock = threading.Lock()
        self._logger = logging.getLogger("slash.commands.registry")

    # -- registration ---------------------------------------------------------

    def register(self, command: Command) -> None:
        """
        Register a command.

        Raises DuplicateRegistrationError if the name or any alias is
        already taken anywhere in the registry. Nothing is changed on
        failure.
        """
        with self._write_lock:
            keys = [command.name] + [normalize_token(a) for a in command.all_aliases]
            seen: Dict[str, str] = {}
            for key in keys:
                if not key:
                    raise ValueError(f"Empty alias on command '{command.name}'")
                owner = self._owner_of(key)
                if owner is not None:
                    raise DuplicateRegistrationError(key, owner, command.name)
                if key in seen:
                    raise DuplicateRegistrationError(key, command.name, command.name)
                seen[key] = command.name

            localized = [p for p in (command.localized_name, *command.localized_aliases) if p]
            for phrase in localized:
                existing = self._intents.get(normalize_phrase(phrase))
                if existing is not None and existing.target != command.name:
                    raise DuplicateRegistrationError(phrase, existing.target, command.name)

            self._commands[command.name] = command
            for alias in keys[1:]:
                self._alias_map[alias] = command.name
            for phrase in localized:
                self._add_intent(phrase, command.name)
            self._reorder_intents()

        self._logger.debug(f"Registered command: {command.name} ({len(keys) - 1} aliases)")

    def register_intent(self, phrase: str, command_name: str) -> None:
        """
        Map a free-text phrase to a command (optionally with fixed args,
        e.g. "todo add"). The same phrase may not map to two targets.
        """
        with self._write_lock:
            self._check_intent(phrase, command_name)
            self._add_intent(phrase, command_name)
            self._reorder_intents()

    def register_intents(self, table: Union[Mapping[str, str], Iterable[Tuple[str, str]]]) -> int:
        """
        Bulk-register an intent table. All-or-nothing.
        Returns the number of phrases added.
        """
        pairs = list(table.items()) if isinstance(table, Mapping) else list(table)
        with self._write_lock:
            staged: Dict[str, str] = {}
            for phrase, target in pairs:
                self._check_intent(phrase, target)
                key = normalize_phrase(phrase)
                previous = staged.get(key)
                if previous is not None and previous != normalize_phrase(target):
                    raise DuplicateRegistrationError(key, previous, target)
                staged[key] = normalize_phrase(target)

            before = len(self._intents)
            for phrase, target in pairs:
                self._add_intent(phrase, target)
            self._reorder_intents()
            added = len(self._intents) - before

        self._logger.debug(f"Registered {added} intent phrases")
        return added

    def bind_handler(
        self,
        name: str,
        handler: Handler,
        completion_provider: Optional[CompletionProvider] = None,
    ) -> None:
        """Attach a host handler to a catalog-loaded command."""
        command = self.get_command(name)
        if command is None:
            raise KeyError(f"Unknown command: {name}")
        command.handler = handler
        if completion_provider is not None:
            command.completion_provider = completion_provider

    def _owner_of(self, key: str) -> Optional[str]:
        if key in self._commands:
            return key
        return self._alias_map.get(key)

    def _check_intent(self, phrase: str, target: str) -> None:
        key = normalize_phrase(phrase)
        if not key:
            raise ValueError("Intent phrase must not be empty")
        if not normalize_phrase(target):
            raise ValueError(f"Intent '{phrase}' has an empty target")
        existing = self._intents.get(key)
        if existing is not None and existing.target != normalize_phrase(target):
            raise DuplicateRegistrationError(key, existing.target, target)

    def _add_intent(self, phrase: str, target: str) -> None:
        key = normalize_phrase(phrase)
        if key in self._intents:
            return
        self._intents[key] = IntentEntry(key, normalize_phrase(target), len(self._intents))

    def _reorder_intents(self) -> None:
        self._by_specificity = sorted(
            self._intents.values(), key=lambda e: (-len(e.phrase), e.order)
        )

    # -- lookup ---------------------------------------------------------------

    def lookup_by_name_or_alias(self, token: str) -> Optional[Command]:
        """Direct name lookup, then alias lookup."""
        key = normalize_token(token)
        command = self._commands.get(key)
        if command is not None:
            return command
        name = self._alias_map.get(key)
        if name is not None:
            return self._commands.get(name)
        return None

    def get_command(self, name: str) -> Optional[Command]:
        """Get a command by canonical name only."""
        return self._commands.get(normalize_token(name))

    def all_commands(self) -> Iterator[Command]:
        """Commands in registration order."""
        return iter(list(self._commands.values()))

    def get_intent(self, phrase: str) -> Optional[IntentEntry]:
        return self._intents.get(normalize_phrase(phrase))

    def intents(self) -> List[IntentEntry]:
        """Intent entries in registration order."""
        return sorted(self._intents.values(), key=lambda e: e.order)

    def intents_by_specificity(self) -> List[IntentEntry]:
        """Intent entries, longest phrase first, then registration order."""
        return list(self._by_specificity)

    def list_by_category(self, category: Union[str, CommandCategory]) -> List[Command]:
        category = CommandCategory(category)
        return [c for c in self._commands.values() if c.category == category]

    # -- catalog --------------------------------------------------------------

    def load_catalog(self, path: Union[str, Path]) -> int:
        """
        Load commands and the intent table from a YAML catalog.
        Returns number of commands loaded.

        All-or-nothing: the catalog is registered into a staged copy and
        only swapped in once every command and phrase was accepted.
        """
        path = Path(path)
        if not path.exists():
            raise CatalogError(f"Command catalog not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise CatalogError(f"Malformed YAML in command catalog {path}: {e}") from e

        try:
            catalog = CatalogSchema.model_validate(data)
        except ValidationError as e:
            raise CatalogError(f"Invalid command catalog {path}: {e}") from e

        staged = self._copy()
        for entry in catalog.commands:
            staged.register(entry.to_command())
        staged.register_intents(catalog.intents)

        with self._write_lock:
            self._commands = staged._commands
            self._alias_map = staged._alias_map
            self._intents = staged._intents
            self._by_specificity = staged._by_specificity

        self._logger.info(
            f"Loaded catalog v{catalog.version}: {len(catalog.commands)} commands, "
            f"{len(catalog.intents)} intents"
        )
        return len(catalog.commands)

    def _copy(self) -> "CommandRegistry":
        with self._write_lock:
            copy = CommandRegistry()
            copy._commands = dict(self._commands)
            copy._alias_map = dict(self._alias_map)
            copy._intents = dict(self._intents)
            copy._by_specificity = list(self._by_specificity)
        return copy

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, token: str) -> bool:
        return self.lookup_by_name_or_alias(token) is not None


class ExactResolver:
    """O(1) lookup of a single token by canonical name, then alias."""

    def __init__(self, registry: CommandRegistry):
        self._registry = registry

    def resolve(self, token: str) -> Optional[Command]:
        if not token or not token.strip():
            return None
        return self._registry.lookup_by_name_or_alias(token)
