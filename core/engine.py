"""
Command Engine
--------------
Composes the resolution tiers into one linear fallback pipeline and
hands the winner to the dispatcher.

    raw input -> exact name/alias
              -> (other script)     intent phrases -> fuzzy phrases
              -> (command alphabet) typo correction
              -> dispatch | suggestions | unresolved

Each submission is resolved independently. The only shared state is
the registry snapshot, which is read-only while a call is in flight.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from commands.errors import DuplicateRegistrationError
from commands.fuzzy import HANGUL, Decomposer, FuzzyResolver
from commands.intent import IntentResolver, is_canonical_script
from commands.registry import Command, CommandRegistry, ExactResolver
from commands.suggestions import Suggestion, SuggestionRanker
from commands.typo import TypoAction, TypoCorrector
from infra.config import EngineConfig
from infra.logging import TurnContext, get_logger

from .dispatcher import DispatchResult, Dispatcher
from .errors import (
    EngineError, ErrorCategory, ErrorReporter,
    HandlerExecutionError, UnresolvedCommandError,
)

Confirm = Callable[[str], bool]
ReportError = Callable[[str], None]


class OutcomeStatus(Enum):
    """What happened to one submitted line."""
    EXECUTED = auto()
    CORRECTED_AND_EXECUTED = auto()
    SUGGESTIONS_OFFERED = auto()
    UNRESOLVED = auto()


@dataclass
class ResolutionOutcome:
    """Result of resolve_and_dispatch. Never an exception."""
    status: OutcomeStatus
    raw_input: str
    original_token: str = ""
    command: Optional[Command] = None
    candidates: List[Command] = field(default_factory=list)
    tier: Optional[str] = None
    args: List[str] = field(default_factory=list)
    error: Optional[HandlerExecutionError] = None
    turn_id: Optional[str] = None

    @property
    def executed(self) -> bool:
        return self.status in (OutcomeStatus.EXECUTED, OutcomeStatus.CORRECTED_AND_EXECUTED)

    @property
    def succeeded(self) -> bool:
        return self.executed and self.error is None

    @property
    def chosen_command(self) -> Optional[str]:
        return self.command.name if self.command else None

    def __repr__(self) -> str:
        target = self.command.name if self.command else [c.name for c in self.candidates]
        return f"ResolutionOutcome({self.status.name}, {self.original_token!r} -> {target})"


@dataclass
class Resolution:
    """Pipeline decision before anything is dispatched."""
    raw_input: str
    token: str
    args: List[str]
    command: Optional[Command] = None
    tier: Optional[str] = None
    corrected: bool = False
    candidates: List[Command] = field(default_factory=list)


class _Snapshot:
    """A registry together with the resolvers reading it."""

    def __init__(
        self,
        registry: CommandRegistry,
        config: EngineConfig,
        decomposer: Decomposer,
        owner: "CommandEngine",
    ):
        self.registry = registry
        self.exact = ExactResolver(registry)
        self.intent = IntentResolver(registry, self.exact)
        self.fuzzy = FuzzyResolver(
            registry, self.exact, threshold=config.fuzzy_threshold,
            decomposer=decomposer,
            on_ambiguous=owner._on_ambiguous,
        )
        self.typo = TypoCorrector(
            registry,
            max_distance=config.max_typo_distance,
            autocorrect_distance=config.autocorrect_distance,
            max_suggestions=config.max_suggestions,
            trigger=config.trigger_chars[:1],
            on_ambiguous=owner._on_ambiguous,
            on_confirm_error=owner._on_confirm_error,
        )
        self.ranker = SuggestionRanker(registry, trigger_chars=config.trigger_chars)


class CommandEngine:
    """
    Resolve-and-dispatch entry point.

    Host capabilities are injected:
    - confirm(prompt) -> bool, asked before auto-correcting a typo
    - report_error(message), told about handler failures and unresolved input
    """

    def __init__(
        self,
        registry: Optional[CommandRegistry] = None,
        config: Optional[EngineConfig] = None,
        confirm: Optional[Confirm] = None,
        report_error: Optional[ReportError] = None,
        environment: Optional[Dict[str, Any]] = None,
        decomposer: Decomposer = HANGUL,
    ):
        self.config = config or EngineConfig()
        self._decomposer = decomposer
        self._confirm = confirm
        self._report_error = report_error
        self.errors = ErrorReporter()
        self._snapshot = _Snapshot(registry or CommandRegistry(), self.config, decomposer, self)
        self._dispatcher = Dispatcher(on_error=self._on_handler_error, environment=environment)
        self._logger = get_logger("core.engine")

    # -- registration -----------------------------------------------------------

    @property
    def registry(self) -> CommandRegistry:
        return self._snapshot.registry

    def register(self, command: Command) -> None:
        try:
            self._snapshot.registry.register(command)
        except DuplicateRegistrationError as e:
            self._record_duplicate(e)
            raise

    def register_intents(self, table: Mapping[str, str]) -> int:
        try:
            return self._snapshot.registry.register_intents(table)
        except DuplicateRegistrationError as e:
            self._record_duplicate(e)
            raise

    def _record_duplicate(self, error: DuplicateRegistrationError) -> None:
        self.errors.report(EngineError.from_exception(
            error,
            ErrorCategory.DUPLICATE_REGISTRATION,
            details={"key": error.key, "existing": error.existing},
        ))

    def reload(self, registry: CommandRegistry) -> None:
        """Swap in a fully built registry; in-flight calls keep the old one."""
        self._snapshot = _Snapshot(registry, self.config, self._decomposer, self)
        self._logger.info(f"Registry replaced: {len(registry)} commands")

    # -- resolution -------------------------------------------------------------

    def parse(self, raw_input: str) -> Tuple[str, List[str], str]:
        """Split into (command token, args, command text without trigger)."""
        stripped = raw_input.strip()
        if stripped and stripped[0] in self.config.trigger_chars:
            stripped = stripped[1:].strip()
        parts = stripped.split()
        token = parts[0].lower() if parts else ""
        return token, parts[1:], stripped

    def resolve(self, raw_input: str) -> Resolution:
        """Run the tiers. May ask the host to confirm a typo correction."""
        snapshot = self._snapshot
        token, args, text = self.parse(raw_input)
        resolution = Resolution(raw_input=raw_input, token=token, args=args)
        if not token:
            return resolution

        command = snapshot.exact.resolve(token)
        if command is not None:
            resolution.command, resolution.tier = command, "exact"
            return resolution

        if not is_canonical_script(token):
            match = snapshot.intent.resolve(text)
            if match is None and snapshot.fuzzy.applies(text):
                match = snapshot.fuzzy.resolve(text)
            if match is not None:
                resolution.command, resolution.tier = match.command, match.tier
                resolution.args = list(match.args)
            return resolution

        decision = snapshot.typo.correct(token, self._confirm)
        resolution.candidates = [c.command for c in decision.candidates]
        if decision.action == TypoAction.CORRECTED:
            resolution.command, resolution.tier = decision.chosen, "typo"
            resolution.corrected = True
        return resolution

    def resolve_and_dispatch(
        self,
        raw_input: str,
        environment: Optional[Dict[str, Any]] = None,
    ) -> ResolutionOutcome:
        with TurnContext() as turn_id:
            resolution = self.resolve(raw_input)
            if resolution.command is None:
                return self._not_executed(resolution, turn_id)
            result = self._dispatcher.dispatch(
                resolution.command, resolution.args, raw_input, environment
            )
            return self._executed(resolution, result, turn_id)

    async def aresolve_and_dispatch(
        self,
        raw_input: str,
        environment: Optional[Dict[str, Any]] = None,
    ) -> ResolutionOutcome:
        with TurnContext() as turn_id:
            resolution = self.resolve(raw_input)
            if resolution.command is None:
                return self._not_executed(resolution, turn_id)
            result = await self._dispatcher.dispatch_async(
                resolution.command, resolution.args, raw_input, environment
            )
            return self._executed(resolution, result, turn_id)

    def _executed(self, resolution: Resolution, result: DispatchResult, turn_id: str) -> ResolutionOutcome:
        status = (
            OutcomeStatus.CORRECTED_AND_EXECUTED if resolution.corrected
            else OutcomeStatus.EXECUTED
        )
        self._logger.info(
            f"'{resolution.token}' -> {resolution.command.name} via {resolution.tier}",
            extra={"tier": resolution.tier, "command": resolution.command.name},
        )
        return ResolutionOutcome(
            status=status,
            raw_input=resolution.raw_input,
            original_token=resolution.token,
            command=resolution.command,
            candidates=resolution.candidates,
            tier=resolution.tier,
            args=resolution.args,
            error=result.error,
            turn_id=turn_id,
        )

    def _not_executed(self, resolution: Resolution, turn_id: str) -> ResolutionOutcome:
        if resolution.candidates:
            names = [c.name for c in resolution.candidates]
            self._logger.info(
                f"Suggesting {names} for '{resolution.token}'",
                extra={"candidates": names},
            )
            return ResolutionOutcome(
                status=OutcomeStatus.SUGGESTIONS_OFFERED,
                raw_input=resolution.raw_input,
                original_token=resolution.token,
                candidates=resolution.candidates,
                args=resolution.args,
                turn_id=turn_id,
            )

        unresolved = UnresolvedCommandError(resolution.token or resolution.raw_input.strip())
        self._notify(EngineError(
            category=ErrorCategory.UNRESOLVED_COMMAND,
            message=str(unresolved),
            details={"token": resolution.token},
        ))
        return ResolutionOutcome(
            status=OutcomeStatus.UNRESOLVED,
            raw_input=resolution.raw_input,
            original_token=resolution.token,
            args=resolution.args,
            turn_id=turn_id,
        )

    def _on_handler_error(self, error: HandlerExecutionError) -> None:
        self._notify(EngineError.from_exception(
            error, ErrorCategory.HANDLER_FAILURE, details={"command": error.command_name}
        ))

    # Recorded in self.errors only. report_error is kept for unresolved
    # input and handler failures.
    def _on_ambiguous(self, message: str, names: List[str]) -> None:
        self.errors.report(EngineError(
            category=ErrorCategory.AMBIGUOUS_MATCH,
            message=message,
            details={"candidates": names},
        ))

    def _on_confirm_error(self, error: Exception) -> None:
        self.errors.report(EngineError.from_exception(error, ErrorCategory.CONFIRMATION_FAILURE))

    def _notify(self, error: EngineError) -> None:
        self.errors.report(error)
        if self._report_error is None:
            return
        try:
            self._report_error(error.message)
        except Exception as e:
            self._logger.error(f"report_error capability failed: {e}")

    # -- suggestions ------------------------------------------------------------

    def get_suggestions(self, partial_input: str) -> List[Suggestion]:
        return self._snapshot.ranker.get_suggestions(partial_input)

    def provide_completions(self, partial_input: str) -> List[str]:
        return self._snapshot.ranker.provide_completions(partial_input)

    def get_status(self) -> Dict[str, Any]:
        registry = self._snapshot.registry
        return {
            "commands_loaded": len(registry),
            "intents_loaded": len(registry.intents()),
            "errors": self.errors.get_error_stats(),
        }


def create_engine(
    config: Optional[EngineConfig] = None,
    confirm: Optional[Confirm] = None,
    report_error: Optional[ReportError] = None,
    environment: Optional[Dict[str, Any]] = None,
) -> CommandEngine:
    """Engine with the catalog named in config loaded."""
    config = config or EngineConfig()
    registry = CommandRegistry()
    registry.load_catalog(config.catalog_path)
    return CommandEngine(
        registry,
        config=config,
        confirm=confirm,
        report_error=report_error,
        environment=environment,
    )
