"""
Centralized Logging
-------------------
Structured logging scoped to one submitted line (a "turn").

Design:
- Every resolve_and_dispatch call runs inside a TurnContext
- The turn id rides along in a ContextVar, so resolvers, dispatcher and
  handlers all log under it without passing it around
- Console output goes through Rich, file output is JSON lines
- Severity: DEBUG=scores, INFO=resolution, WARNING=ambiguity, ERROR=handler failure

Nothing is configured on import. Hosts call configure_logging() once;
library code only ever calls get_logger().

Usage:
    from infra.logging import get_logger, TurnContext

    logger = get_logger("core.engine")

    with TurnContext() as turn_id:
        logger.info("Resolving input")
"""

import contextvars
import json
import logging
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "slash"
LOG_FILE_NAME = "slash.log"
NO_TURN = "-"

_current_turn: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "slash_turn_id", default=None
)


def generate_turn_id() -> str:
    return f"turn_{uuid.uuid4().hex[:12]}"


def get_turn_id() -> Optional[str]:
    """Turn id of the line currently being resolved, if any."""
    return _current_turn.get()


class TurnContext:
    """
    Scope a block to one turn id. Nested scopes restore the outer id.

        with TurnContext() as turn_id:
            logger.info("Dispatching...")
    """

    def __init__(self, turn_id: Optional[str] = None):
        self.turn_id = turn_id or generate_turn_id()
        self._tokens: List[contextvars.Token] = []

    def __enter__(self) -> str:
        self._tokens.append(_current_turn.set(self.turn_id))
        return self.turn_id

    def __exit__(self, *exc_info) -> None:
        _current_turn.reset(self._tokens.pop())


class TurnIdFilter(logging.Filter):
    """Stamps record.turn_id unless the caller already set one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "turn_id", None) is None:
            record.turn_id = get_turn_id() or NO_TURN
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line; resolution extras are copied when present."""

    EXTRA_FIELDS = ("command", "tier", "score", "distance", "status", "candidates")

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "turn_id": getattr(record, "turn_id", NO_TURN),
            "message": record.getMessage(),
        }
        entry.update({
            key: getattr(record, key) for key in self.EXTRA_FIELDS if hasattr(record, key)
        })
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class TurnRichHandler(RichHandler):
    """Rich console handler that prefixes messages with the turn id."""

    def render_message(self, record: logging.LogRecord, message: str):
        turn_id = getattr(record, "turn_id", NO_TURN)
        if turn_id != NO_TURN:
            message = f"[{turn_id}] {message}"
        return super().render_message(record, message)


def _console_handler(level: int, rich_console: Optional[Console]) -> logging.Handler:
    handler = TurnRichHandler(
        console=rich_console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
    )
    handler.setLevel(level)
    return handler


def _file_handler(log_dir: Optional[str]) -> logging.Handler:
    directory = Path(log_dir or "logs")
    directory.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(directory / LOG_FILE_NAME),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(JSONFormatter())
    return handler


def configure_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    console: bool = True,
    file: bool = True,
    rich_console: Optional[Console] = None,
    force: bool = False,
) -> logging.Logger:
    """
    Attach handlers to the 'slash' logger.

    Args:
        level: Console level (the file always gets DEBUG)
        log_dir: Directory for slash.log (default: ./logs)
        console: Log to a Rich console
        file: Log JSON lines to a rotating file
        rich_console: Console to render into (default: stderr)
        force: Replace handlers from an earlier call

    Returns the configured logger. Calling again is a no-op unless
    force is set.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if getattr(root, "_slash_configured", False) and not force:
        return root

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    handlers = []
    if console:
        handlers.append(_console_handler(level, rich_console))
    if file:
        handlers.append(_file_handler(log_dir))

    turn_filter = TurnIdFilter()
    for handler in handlers:
        handler.addFilter(turn_filter)
        root.addHandler(handler)

    root.setLevel(logging.DEBUG)
    root.propagate = False
    root._slash_configured = True
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Logger under the 'slash' namespace with turn ids attached.

    Args:
        name: Dotted name; 'slash.' is prepended unless already present
    """
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"

    logger = logging.getLogger(name)
    if not any(isinstance(f, TurnIdFilter) for f in logger.filters):
        logger.addFilter(TurnIdFilter())
    return logger
