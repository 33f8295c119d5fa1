# Infrastructure module - logging and configuration

from .config import ConfigManager, EngineConfig
from .logging import (
    get_logger, configure_logging, TurnContext,
    get_turn_id, generate_turn_id,
)

__all__ = [
    # Configuration
    "ConfigManager",
    "EngineConfig",
    # Logging
    "get_logger",
    "configure_logging",
    "TurnContext",
    "get_turn_id",
    "generate_turn_id",
]
