"""
Error Handling Module
---------------------
Typed engine errors with classification and reporting.
Engine-level failures become outcome values; only handler errors are
caught exceptions, and they are always caught at the dispatcher.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Sequence
import logging
import traceback

from commands.errors import CommandEngineError, DuplicateRegistrationError, AmbiguousMatchWarning


class ErrorCategory(Enum):
    """Categories of errors for handling decisions."""
    DUPLICATE_REGISTRATION = auto()  # Name/alias/phrase already taken
    UNRESOLVED_COMMAND = auto()      # Input matched nothing in any tier
    HANDLER_FAILURE = auto()         # Handler raised
    AMBIGUOUS_MATCH = auto()         # Tie at the best score/distance
    CONFIRMATION_FAILURE = auto()    # Host confirm capability raised


class UnresolvedCommandError(CommandEngineError):
    """Input matched nothing. Reported, never raised across the engine."""

    def __init__(self, token: str, candidates: Sequence[str] = ()):
        self.token = token
        self.candidates = list(candidates)
        message = f"Unknown command: {token}"
        if self.candidates:
            message += f". Did you mean: {', '.join(self.candidates)}?"
        super().__init__(message)


class HandlerExecutionError(CommandEngineError):
    """Wraps whatever a command handler raised."""

    def __init__(self, command_name: str, cause: BaseException):
        self.command_name = command_name
        self.cause = cause
        self.stack_trace = "".join(
            traceback.format_exception(type(cause), cause, cause.__traceback__)
        )
        super().__init__(f"Command '{command_name}' failed: {cause}")


@dataclass
class EngineError:
    """
    Structured error record.

    Used for consistent error reporting and history.
    """
    category: ErrorCategory
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = field(default_factory=datetime.now)
    stack_trace: Optional[str] = None

    @classmethod
    def from_exception(
        cls,
        exception: Exception,
        category: ErrorCategory,
        details: Optional[Dict] = None,
    ) -> "EngineError":
        stack = getattr(exception, "stack_trace", None) or "".join(
            traceback.format_exception(type(exception), exception, exception.__traceback__)
        )
        return cls(
            category=category,
            message=str(exception),
            details=details,
            stack_trace=stack,
        )

    def __repr__(self) -> str:
        return f"EngineError({self.category.name}: {self.message})"


class ErrorReporter:
    """
    Central error sink for the engine.

    Logs by category and keeps a bounded history. The host's own
    report_error(message) capability is called in addition.
    """

    LEVELS: Dict[ErrorCategory, int] = {
        ErrorCategory.UNRESOLVED_COMMAND: logging.INFO,
        ErrorCategory.AMBIGUOUS_MATCH: logging.WARNING,
        ErrorCategory.DUPLICATE_REGISTRATION: logging.WARNING,
        ErrorCategory.CONFIRMATION_FAILURE: logging.WARNING,
        ErrorCategory.HANDLER_FAILURE: logging.ERROR,
    }

    def __init__(self, max_history: int = 100):
        self._logger = logging.getLogger("slash.errors")
        self._history: List[EngineError] = []
        self._max_history = max_history

    def report(self, error: EngineError) -> None:
        level = self.LEVELS.get(error.category, logging.ERROR)
        self._logger.log(level, f"{error.category.name}: {error.message}")
        if error.stack_trace and level >= logging.ERROR:
            self._logger.debug(f"Stack trace:\n{error.stack_trace}")

        self._history.append(error)
        if len(self._history) > self._max_history:
            self._history.pop(0)

    @property
    def history(self) -> List[EngineError]:
        return list(self._history)

    def get_error_stats(self) -> Dict[str, int]:
        stats: Dict[str, int] = {}
        for error in self._history:
            key = error.category.name
            stats[key] = stats.get(key, 0) + 1
        return stats

    def clear_history(self) -> None:
        self._history.clear()


__all__ = [
    "ErrorCategory", "EngineError", "ErrorReporter",
    "CommandEngineError", "DuplicateRegistrationError", "AmbiguousMatchWarning",
    "UnresolvedCommandError", "HandlerExecutionError",
]
