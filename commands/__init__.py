# Commands module - registry and the resolution tiers
# Pure matching: no host UI, no handler execution

from .errors import (
    CommandEngineError, DuplicateRegistrationError, CatalogError, AmbiguousMatchWarning
)
from .registry import (
    Command, CommandCategory, CommandContext, CommandRegistry,
    ExactResolver, IntentEntry, SubCommand, normalize_phrase,
)
from .intent import IntentResolver, IntentMatch, is_canonical_script
from .fuzzy import FuzzyResolver, HangulDecomposer, similarity
from .typo import TypoCorrector, TypoCandidate, TypoDecision, TypoAction, levenshtein
from .suggestions import SuggestionRanker, Suggestion

__all__ = [
    "CommandEngineError", "DuplicateRegistrationError", "CatalogError", "AmbiguousMatchWarning",
    "Command", "CommandCategory", "CommandContext", "CommandRegistry",
    "ExactResolver", "IntentEntry", "SubCommand", "normalize_phrase",
    "IntentResolver", "IntentMatch", "is_canonical_script",
    "FuzzyResolver", "HangulDecomposer", "similarity",
    "TypoCorrector", "TypoCandidate", "TypoDecision", "TypoAction", "levenshtein",
    "SuggestionRanker", "Suggestion",
]
