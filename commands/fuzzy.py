"""
Fuzzy Resolver
--------------
Weighted similarity scoring for scripts whose characters decompose into
sub-syllabic components (Hangul by default).

similarity(a, b) is the capped sum of independent, symmetric signals:

    initial components equal      0.3
    unigram Jaccard             x 0.3
    bigram Jaccard              x 0.4
    length similarity           x 0.2
    same first character         +0.1

Tie-break at the best score: longer phrase, then earlier registration.
A tie that survives both and spans two commands is rejected.
"""

from typing import Callable, List, Optional, Protocol, Set, Tuple
import logging
import warnings

from .errors import AmbiguousMatchWarning
from .intent import IntentMatch
from .registry import CommandRegistry, ExactResolver, IntentEntry, normalize_phrase

DEFAULT_THRESHOLD = 0.45

INITIAL_WEIGHT = 0.3
UNIGRAM_WEIGHT = 0.3
BIGRAM_WEIGHT = 0.4
LENGTH_WEIGHT = 0.2
PREFIX_BONUS = 0.1

OnAmbiguous = Callable[[str, List[str]], None]


class Decomposer(Protocol):
    """Splits characters of a script into phonetic components."""

    def applies(self, text: str) -> bool:
        ...

    def initial(self, char: str) -> str:
        ...


class HangulDecomposer:
    """Hangul syllables -> (leading consonant, vowel, trailing consonant)."""

    SYLLABLE_BASE = 0xAC00
    SYLLABLE_LAST = 0xD7A3
    VOWEL_COUNT = 21
    TAIL_COUNT = 28

    LEADS = (
        "ㄱ", "ㄲ", "ㄴ", "ㄷ", "ㄸ", "ㄹ", "ㅁ", "ㅂ", "ㅃ", "ㅅ",
        "ㅆ", "ㅇ", "ㅈ", "ㅉ", "ㅊ", "ㅋ", "ㅌ", "ㅍ", "ㅎ",
    )
    VOWELS = (
        "ㅏ", "ㅐ", "ㅑ", "ㅒ", "ㅓ", "ㅔ", "ㅕ", "ㅖ", "ㅗ", "ㅘ", "ㅙ",
        "ㅚ", "ㅛ", "ㅜ", "ㅝ", "ㅞ", "ㅟ", "ㅠ", "ㅡ", "ㅢ", "ㅣ",
    )
    TAILS = (
        "", "ㄱ", "ㄲ", "ㄳ", "ㄴ", "ㄵ", "ㄶ", "ㄷ", "ㄹ", "ㄺ",
        "ㄻ", "ㄼ", "ㄽ", "ㄾ", "ㄿ", "ㅀ", "ㅁ", "ㅂ", "ㅄ", "ㅅ",
        "ㅆ", "ㅇ", "ㅈ", "ㅊ", "ㅋ", "ㅌ", "ㅍ", "ㅎ",
    )

    def is_syllable(self, char: str) -> bool:
        return len(char) == 1 and self.SYLLABLE_BASE <= ord(char) <= self.SYLLABLE_LAST

    def applies(self, text: str) -> bool:
        return any(self.is_syllable(ch) for ch in text)

    def decompose(self, char: str) -> Tuple[str, str, str]:
        """Split one syllable; other characters come back as (char, '', '')."""
        if not self.is_syllable(char):
            return (char, "", "")
        code = ord(char) - self.SYLLABLE_BASE
        lead, rest = divmod(code, self.VOWEL_COUNT * self.TAIL_COUNT)
        vowel, tail = divmod(rest, self.TAIL_COUNT)
        return (self.LEADS[lead], self.VOWELS[vowel], self.TAILS[tail])

    def initial(self, char: str) -> str:
        return self.decompose(char)[0]


HANGUL = HangulDecomposer()


def _ngrams(text: str, n: int) -> Set[str]:
    return {text[i:i + n] for i in range(len(text) - n + 1)}


def _jaccard(a: Set[str], b: Set[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def similarity(a: str, b: str, decomposer: Decomposer = HANGUL) -> float:
    """Score in [0, 1]; symmetric in a and b."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    initials_a = "".join(decomposer.initial(ch) for ch in a)
    initials_b = "".join(decomposer.initial(ch) for ch in b)
    initial_score = INITIAL_WEIGHT if initials_a == initials_b else 0.0

    unigram_score = _jaccard(set(a), set(b)) * UNIGRAM_WEIGHT

    bigram_score = 0.0
    if len(a) >= 2 and len(b) >= 2:
        bigram_score = _jaccard(_ngrams(a, 2), _ngrams(b, 2)) * BIGRAM_WEIGHT

    length_score = (1 - abs(len(a) - len(b)) / max(len(a), len(b), 1)) * LENGTH_WEIGHT

    prefix_bonus = PREFIX_BONUS if a[0] == b[0] else 0.0

    return min(1.0, initial_score + unigram_score + bigram_score + length_score + prefix_bonus)


class FuzzyResolver:
    """Best-scoring intent phrase above a fixed threshold."""

    def __init__(
        self,
        registry: CommandRegistry,
        exact: Optional[ExactResolver] = None,
        threshold: float = DEFAULT_THRESHOLD,
        decomposer: Decomposer = HANGUL,
        on_ambiguous: Optional[OnAmbiguous] = None,
    ):
        self._registry = registry
        self._exact = exact or ExactResolver(registry)
        self.threshold = threshold
        self._decomposer = decomposer
        self._on_ambiguous = on_ambiguous
        self._logger = logging.getLogger("slash.commands.fuzzy")

    def applies(self, text: str) -> bool:
        return self._decomposer.applies(text)

    def _ambiguous(self, message: str, names: List[str]) -> None:
        """Hand a refused tie to the owner, or warn when running standalone."""
        if self._on_ambiguous is None:
            warnings.warn(message, AmbiguousMatchWarning, stacklevel=3)
        else:
            self._on_ambiguous(message, names)

    def rank(self, text: str) -> List[Tuple[float, IntentEntry]]:
        """All resolvable phrases scored, best first, tie-broken by specificity."""
        normalized = normalize_phrase(text)
        scored = []
        for entry in self._registry.intents():
            if self._exact.resolve(entry.command_name) is None:
                continue
            score = round(similarity(normalized, entry.phrase, self._decomposer), 9)
            scored.append((score, entry))
        scored.sort(key=lambda item: (-item[0], -len(item[1].phrase), item[1].order))
        return scored

    def resolve(self, text: str) -> Optional[IntentMatch]:
        normalized = normalize_phrase(text)
        if not normalized or not self.applies(normalized):
            return None

        ranked = self.rank(normalized)
        if not ranked:
            return None

        best_score, best = ranked[0]
        self._logger.debug(
            f"Fuzzy best for '{normalized}': '{best.phrase}' ({best_score:.2f})",
            extra={"score": best_score},
        )
        if best_score < self.threshold:
            return None

        rivals = [
            entry for score, entry in ranked[1:]
            if score == best_score
            and len(entry.phrase) == len(best.phrase)
            and entry.command_name != best.command_name
        ]
        if rivals:
            names = sorted({best.command_name, *(e.command_name for e in rivals)})
            message = (
                f"'{normalized}' matches {', '.join(names)} equally "
                f"(score {best_score:.2f}); refusing to guess"
            )
            self._logger.warning(message)
            self._ambiguous(message, names)
            return None

        command = self._exact.resolve(best.command_name)
        self._logger.info(f"Fuzzy match: '{normalized}' -> '{best.phrase}' ({best_score:.2f})")
        return IntentMatch(
            command=command,
            entry=best,
            tier="fuzzy",
            score=best_score,
            args=best.fixed_args,
        )
