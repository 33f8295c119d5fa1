# Core module - engine, dispatcher and error taxonomy
# The engine is the ONLY entry point for resolve-and-dispatch

from .errors import (
    ErrorReporter, EngineError, ErrorCategory,
    HandlerExecutionError, UnresolvedCommandError,
)
from .dispatcher import Dispatcher, DispatchResult
from .engine import (
    CommandEngine, ResolutionOutcome, OutcomeStatus, Resolution, create_engine,
)

__all__ = [
    "ErrorReporter", "EngineError", "ErrorCategory",
    "HandlerExecutionError", "UnresolvedCommandError",
    "Dispatcher", "DispatchResult",
    "CommandEngine", "ResolutionOutcome", "OutcomeStatus", "Resolution", "create_engine",
]
