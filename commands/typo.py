"""
Typo Corrector
--------------
Edit-distance scan over registered names and aliases for tokens in the
command alphabet that failed exact lookup.

Policy:
- best distance <= autocorrect distance, single best command: ask to confirm
- otherwise, any candidates within max distance: offer up to N of them
- otherwise: nothing
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Dict, List, Optional
import logging
import warnings

from .errors import AmbiguousMatchWarning
from .registry import Command, CommandRegistry

DEFAULT_MAX_DISTANCE = 2
DEFAULT_AUTOCORRECT_DISTANCE = 1
DEFAULT_MAX_SUGGESTIONS = 3

Confirm = Callable[[str], bool]
OnAmbiguous = Callable[[str, List[str]], None]
OnConfirmError = Callable[[Exception], None]


def levenshtein(a: str, b: str) -> int:
    """Unit-cost insert/delete/substitute distance, case-insensitive."""
    a = a.strip().lower()
    b = b.strip().lower()

    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    matrix = [[0] * (len(b) + 1) for _ in range(len(a) + 1)]
    for i in range(len(a) + 1):
        matrix[i][0] = i
    for j in range(len(b) + 1):
        matrix[0][j] = j

    for i in range(1, len(a) + 1):
        for j in range(1, len(b) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            matrix[i][j] = min(
                matrix[i - 1][j] + 1,         # deletion
                matrix[i][j - 1] + 1,         # insertion
                matrix[i - 1][j - 1] + cost,  # substitution
            )

    return matrix[len(a)][len(b)]


@dataclass
class TypoCandidate:
    """A command within edit distance of the typed token."""
    command: Command
    distance: int
    matched: str

    def __repr__(self) -> str:
        return f"TypoCandidate({self.command.name}, d={self.distance}, via={self.matched!r})"


class TypoAction(Enum):
    CORRECTED = auto()   # confirmed substitution
    SUGGEST = auto()     # alternatives offered, nothing executed
    NONE = auto()        # nothing close enough


@dataclass
class TypoDecision:
    action: TypoAction
    candidates: List[TypoCandidate] = field(default_factory=list)
    chosen: Optional[Command] = None
    confirmation_asked: bool = False


class TypoCorrector:
    """Levenshtein-based correction with host confirmation."""

    def __init__(
        self,
        registry: CommandRegistry,
        max_distance: int = DEFAULT_MAX_DISTANCE,
        autocorrect_distance: int = DEFAULT_AUTOCORRECT_DISTANCE,
        max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
        trigger: str = "/",
        on_ambiguous: Optional[OnAmbiguous] = None,
        on_confirm_error: Optional[OnConfirmError] = None,
    ):
        self._registry = registry
        self.max_distance = max_distance
        self.autocorrect_distance = autocorrect_distance
        self.max_suggestions = max_suggestions
        self.trigger = trigger
        self._on_ambiguous = on_ambiguous
        self._on_confirm_error = on_confirm_error
        self._logger = logging.getLogger("slash.commands.typo")

    def find_similar(self, token: str, max_distance: Optional[int] = None) -> List[TypoCandidate]:
        """
        Commands within max_distance of token, by (distance, priority, name).
        Each command appears once, at its smallest name/alias distance.
        """
        limit = self.max_distance if max_distance is None else max_distance
        best: Dict[str, TypoCandidate] = {}

        for command in self._registry.all_commands():
            for key in (command.name, *command.all_aliases):
                distance = levenshtein(token, key)
                if distance > limit:
                    continue
                current = best.get(command.name)
                if current is None or distance < current.distance:
                    best[command.name] = TypoCandidate(command, distance, key)

        return sorted(
            best.values(),
            key=lambda c: (c.distance, c.command.priority, c.command.name),
        )

    def correct(self, token: str, confirm: Optional[Confirm] = None) -> TypoDecision:
        candidates = self.find_similar(token)
        if not candidates:
            return TypoDecision(TypoAction.NONE)

        top = candidates[0]
        offered = candidates[: self.max_suggestions]

        if top.distance > self.autocorrect_distance:
            return TypoDecision(TypoAction.SUGGEST, offered)

        tied = [c for c in candidates if c.distance == top.distance]
        if len(tied) > 1:
            names = [c.command.name for c in tied]
            message = f"'{token}' is equally close to {', '.join(names)}; not auto-correcting"
            self._logger.warning(message, extra={"distance": top.distance})
            if self._on_ambiguous is None:
                warnings.warn(message, AmbiguousMatchWarning, stacklevel=2)
            else:
                self._on_ambiguous(message, names)
            return TypoDecision(TypoAction.SUGGEST, offered)

        if confirm is None:
            return TypoDecision(TypoAction.SUGGEST, offered)

        prompt = (
            f"Command '{self.trigger}{token}' not found. "
            f"Run '{self.trigger}{top.command.name}' instead?"
        )
        try:
            approved = bool(confirm(prompt))
        except Exception as e:
            self._logger.error(f"Confirmation callback error: {e}")
            if self._on_confirm_error is not None:
                self._on_confirm_error(e)
            approved = False

        if approved:
            self._logger.info(f"Typo corrected: '{token}' -> {top.command.name}")
            return TypoDecision(TypoAction.CORRECTED, offered, top.command, confirmation_asked=True)

        self._logger.info(f"User declined correction of '{token}' to {top.command.name}")
        return TypoDecision(TypoAction.SUGGEST, offered, confirmation_asked=True)
