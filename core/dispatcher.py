"""
Dispatcher
----------
Invokes the resolved command's handler exactly once.

Rules:
- Handler exceptions are caught here and never propagate
- No retries, no queuing
- Coroutine handlers are awaited (dispatch_async) or run to completion (dispatch)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import asyncio
import concurrent.futures
import inspect
import logging

from commands.registry import Command, CommandContext
from .errors import HandlerExecutionError


@dataclass
class DispatchResult:
    """Result of one handler invocation."""
    command_name: str
    success: bool
    error: Optional[HandlerExecutionError] = None
    execution_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:
        status = "✓" if self.success else "✗"
        return f"DispatchResult({status} {self.command_name})"


def _run_coroutine(awaitable) -> Any:
    """Run an awaitable to completion from synchronous code."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(awaitable)

    # Already inside a loop: finish it on a private loop in a worker thread
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(asyncio.run, awaitable).result()


class Dispatcher:
    """Boundary between the engine and host-side command handlers."""

    def __init__(
        self,
        on_error: Optional[Callable[[HandlerExecutionError], None]] = None,
        environment: Optional[Dict[str, Any]] = None,
    ):
        self._on_error = on_error
        self._environment = environment or {}
        self._logger = logging.getLogger("slash.core.dispatcher")

    def build_context(
        self,
        args: List[str],
        original_input: str,
        environment: Optional[Dict[str, Any]] = None,
    ) -> CommandContext:
        env = dict(self._environment)
        if environment:
            env.update(environment)
        return CommandContext(args=list(args), original_input=original_input, environment=env)

    def dispatch(
        self,
        command: Command,
        args: List[str],
        original_input: str,
        environment: Optional[Dict[str, Any]] = None,
    ) -> DispatchResult:
        context = self.build_context(args, original_input, environment)
        start_time = datetime.now(timezone.utc)
        try:
            result = command.handler(context)
            if inspect.isawaitable(result):
                _run_coroutine(result)
        except Exception as e:
            return self._failed(command, e, start_time)
        return self._succeeded(command, start_time)

    async def dispatch_async(
        self,
        command: Command,
        args: List[str],
        original_input: str,
        environment: Optional[Dict[str, Any]] = None,
    ) -> DispatchResult:
        context = self.build_context(args, original_input, environment)
        start_time = datetime.now(timezone.utc)
        try:
            result = command.handler(context)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            return self._failed(command, e, start_time)
        return self._succeeded(command, start_time)

    def _elapsed_ms(self, start_time: datetime) -> float:
        return (datetime.now(timezone.utc) - start_time).total_seconds() * 1000

    def _succeeded(self, command: Command, start_time: datetime) -> DispatchResult:
        elapsed = self._elapsed_ms(start_time)
        self._logger.info(f"Executed {command.name} in {elapsed:.1f}ms", extra={"command": command.name})
        return DispatchResult(command.name, True, execution_time_ms=elapsed)

    def _failed(self, command: Command, cause: Exception, start_time: datetime) -> DispatchResult:
        error = HandlerExecutionError(command.name, cause)
        self._logger.error(str(error), extra={"command": command.name})
        if self._on_error is not None:
            try:
                self._on_error(error)
            except Exception as e:
                self._logger.error(f"Error reporter failed: {e}")
        return DispatchResult(command.name, False, error, self._elapsed_ms(start_time))
