# Adapters module - host capabilities for a rich console
# The engine core never imports from here

from .console import ConsoleConfirmer, ConsoleReporter, render_suggestions, render_outcome
from .handlers import bind_console_handlers, model_completions

__all__ = [
    "ConsoleConfirmer",
    "ConsoleReporter",
    "render_suggestions",
    "render_outcome",
    "bind_console_handlers",
    "model_completions",
]
