"""
Configuration Manager
---------------------
Loads configuration from YAML with environment variable overrides.

Rules:
- File values are defaults, SLASH_* environment variables win
- A missing file is not an error; built-in defaults apply
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import os

import yaml

ENV_PREFIX = "SLASH_"


class ConfigManager:
    """
    Centralized configuration management.
    Supports dot notation: 'resolution.max_typo_distance'.
    """

    def __init__(self, config_path: str = "config.yaml"):
        self._config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._logger = logging.getLogger("slash.infra.config")

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file."""
        if self._config_path.exists():
            with open(self._config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
            self._logger.info(f"Loaded config from {self._config_path}")
        else:
            self._config = {}
            self._logger.warning(f"Config file not found: {self._config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.
        Environment variables override file config.
        """
        env_key = f"{ENV_PREFIX}{key.upper().replace('.', '_')}"
        env_value = os.getenv(env_key)
        if env_value is not None:
            return env_value

        value: Any = self._config
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value (runtime only, not persisted)."""
        parts = key.split(".")
        config = self._config

        for part in parts[:-1]:
            config = config.setdefault(part, {})

        config[parts[-1]] = value

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get an entire configuration section."""
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()


@dataclass
class EngineConfig:
    """Tunables for the resolution pipeline."""
    trigger_chars: str = "/"
    max_typo_distance: int = 2
    autocorrect_distance: int = 1
    max_suggestions: int = 3
    fuzzy_threshold: float = 0.45
    catalog_path: str = "commands/command_map.yaml"
    log_level: str = "INFO"

    @classmethod
    def from_manager(cls, manager: ConfigManager) -> "EngineConfig":
        """Build from the 'resolution' and 'logging' sections."""
        defaults = cls()
        return cls(
            trigger_chars=str(manager.get("resolution.trigger_chars", defaults.trigger_chars)),
            max_typo_distance=int(manager.get("resolution.max_typo_distance", defaults.max_typo_distance)),
            autocorrect_distance=int(manager.get("resolution.autocorrect_distance", defaults.autocorrect_distance)),
            max_suggestions=int(manager.get("resolution.max_suggestions", defaults.max_suggestions)),
            fuzzy_threshold=float(manager.get("resolution.fuzzy_threshold", defaults.fuzzy_threshold)),
            catalog_path=str(manager.get("commands.catalog_path", defaults.catalog_path)),
            log_level=str(manager.get("logging.level", defaults.log_level)).upper(),
        )

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "EngineConfig":
        return cls.from_manager(ConfigManager(config_path or "config.yaml"))
