"""
Intent Resolver
---------------
Matches free text (typically another script/language) against the
phrase table. Tiers, first hit wins:

1. exact phrase
2. containment, most specific (longest) phrase first
3. containment after removing all whitespace from both sides
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional
import logging
import re

from .registry import Command, CommandRegistry, ExactResolver, IntentEntry, normalize_phrase

_WHITESPACE = re.compile(r"\s+")


def is_canonical_script(token: str) -> bool:
    """True if every character is printable ASCII (the command alphabet)."""
    return all("\x21" <= ch <= "\x7e" for ch in token)


@dataclass
class IntentMatch:
    """A phrase hit resolved to a command."""
    command: Command
    entry: IntentEntry
    tier: str
    score: float = 1.0
    args: List[str] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"IntentMatch({self.entry.phrase!r} -> {self.command.name}, tier={self.tier})"


class IntentResolver:
    """Phrase-table matching in explicit specificity order."""

    def __init__(self, registry: CommandRegistry, exact: Optional[ExactResolver] = None):
        self._registry = registry
        self._exact = exact or ExactResolver(registry)
        self._logger = logging.getLogger("slash.commands.intent")

    def resolve(self, text: str) -> Optional[IntentMatch]:
        normalized = normalize_phrase(text)
        if not normalized:
            return None

        entry = self._registry.get_intent(normalized)
        if entry is not None:
            match = self._to_match(entry, "intent")
            if match is not None:
                return match

        ordered = self._registry.intents_by_specificity()

        match = self._first_contained(normalized, ordered, compact=False)
        if match is not None:
            return match

        compact_ordered = sorted(ordered, key=lambda e: (-len(e.compact_phrase), e.order))
        return self._first_contained(_WHITESPACE.sub("", normalized), compact_ordered, compact=True)

    def _first_contained(
        self,
        text: str,
        entries: Iterable[IntentEntry],
        compact: bool,
    ) -> Optional[IntentMatch]:
        for entry in entries:
            phrase = entry.compact_phrase if compact else entry.phrase
            if phrase and phrase in text:
                match = self._to_match(entry, "whitespace" if compact else "intent")
                if match is not None:
                    return match
        return None

    def _to_match(self, entry: IntentEntry, tier: str) -> Optional[IntentMatch]:
        command = self._exact.resolve(entry.command_name)
        if command is None:
            self._logger.warning(
                f"Intent '{entry.phrase}' targets unknown command '{entry.command_name}'"
            )
            return None
        self._logger.debug(f"Intent hit ({tier}): '{entry.phrase}' -> {command.name}")
        return IntentMatch(command=command, entry=entry, tier=tier, args=entry.fixed_args)
