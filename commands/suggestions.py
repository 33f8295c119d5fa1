"""
Suggestion Ranker
-----------------
Live autocomplete for partial input. Runs on every keystroke and is
independent of the resolution pipeline. Purely advisory: no execution.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .registry import Command, CommandRegistry, ExactResolver


@dataclass(frozen=True)
class Suggestion:
    """One autocomplete entry for a presentation layer."""
    label: str
    description: str
    insert_text: str
    category: str
    detail: Optional[str] = None


class SuggestionRanker:
    """Prefix/substring matching over commands and sub-command vocabularies."""

    def __init__(self, registry: CommandRegistry, trigger_chars: str = "/"):
        self._registry = registry
        self._exact = ExactResolver(registry)
        self.trigger_chars = trigger_chars

    @property
    def trigger(self) -> str:
        return self.trigger_chars[:1]

    def _split(self, partial: str) -> Optional[Tuple[List[str], bool]]:
        """
        Returns (tokens, trailing_space) or None when the input is not a
        command at all (non-empty and without a trigger).
        """
        stripped = partial.lstrip()
        if not stripped:
            return [], False
        if self.trigger_chars and stripped[0] not in self.trigger_chars:
            return None
        body = stripped[1:] if self.trigger_chars else stripped
        return body.lower().split(), body[-1:].isspace()

    def get_suggestions(self, partial: str) -> List[Suggestion]:
        split = self._split(partial)
        if split is None:
            return []
        tokens, trailing_space = split

        if len(tokens) > 1 or (tokens and trailing_space):
            command = self._exact.resolve(tokens[0])
            if command is not None and command.has_fixed_subcommands:
                last = tokens[-1] if len(tokens) > 1 else ""
                return self._subcommand_suggestions(command, tokens[1:-1], last)

        search = tokens[0] if tokens else ""
        return self._filter_commands(search)

    def _subcommand_suggestions(
        self,
        command: Command,
        preceding: List[str],
        partial_arg: str,
    ) -> List[Suggestion]:
        prefix = " ".join([f"{self.trigger}{command.name}", *preceding])
        matches = [
            sc for sc in command.subcommands
            if sc.name.lower().startswith(partial_arg) or partial_arg in sc.name.lower()
        ]
        # prefix hits before plain substring hits, vocabulary order otherwise
        matches.sort(key=lambda sc: not sc.name.lower().startswith(partial_arg))
        return [
            Suggestion(
                label=f"{prefix} {sc.name}",
                description=sc.description,
                insert_text=f"{prefix} {sc.name} ",
                category=command.category.value,
            )
            for sc in matches
        ]

    def _filter_commands(self, search: str) -> List[Suggestion]:
        matched = []
        for command in self._registry.all_commands():
            keys = (command.name, *command.all_aliases)
            if search and not any(search in key.lower() for key in keys):
                continue
            matched.append(command)

        matched.sort(key=lambda c: (c.priority, c.name))
        return [self._to_suggestion(c) for c in matched]

    def _to_suggestion(self, command: Command) -> Suggestion:
        detail = f"Examples: {', '.join(command.examples)}" if command.examples else None
        return Suggestion(
            label=f"{self.trigger}{command.name}",
            description=command.description,
            insert_text=f"{self.trigger}{command.name} ",
            category=command.category.value,
            detail=detail,
        )

    def provide_completions(self, partial: str) -> List[str]:
        """Argument completions from the command's own provider."""
        split = self._split(partial)
        if split is None or not split[0]:
            return []
        tokens, trailing_space = split
        command = self._exact.resolve(tokens[0])
        if command is None or command.completion_provider is None:
            return []
        partial_arg = "" if trailing_space or len(tokens) == 1 else tokens[-1]
        return list(command.completion_provider(partial_arg))
