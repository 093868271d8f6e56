"""Configuration management for textsweep."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List
import yaml
from dotenv import load_dotenv

from .search.file_search import DocumentFilter
from .search.models import SearchOptions

CONFIG_FILE_NAME = ".textsweeprc"

DEFAULTS: Dict[str, Any] = {
    "batch_size": 10,
    "pattern_timeout": 5.0,
    "max_results": 1000,
    "failure_summary_threshold": 5,
    "log_level": "WARNING",
    "confirm_destructive_actions": True,
    "search_options": {
        "match_case": False,
        "whole_word": False,
        "use_regex": False,
        "multiline": False
    },
    "default_include_patterns": [],
    "default_exclude_patterns": [],
}

# Settings that environment variables override, with the type they parse to
ENV_OVERRIDES = {
    "batch_size": ("TEXTSWEEP_BATCH_SIZE", int),
    "pattern_timeout": ("TEXTSWEEP_PATTERN_TIMEOUT", float),
    "max_results": ("TEXTSWEEP_MAX_RESULTS", int),
    "log_level": ("TEXTSWEEP_LOG_LEVEL", str),
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

logger = logging.getLogger("textsweep.config")


class Config:
    """Configuration manager for textsweep.

    Values resolve in order: environment variables, then ``~/.textsweeprc``,
    then built-in defaults.
    """

    def __init__(self):
        """Initialize configuration with environment variables and config files."""
        # Load environment variables from .env file if it exists
        load_dotenv()

        self.user_config = self._load_user_config()
        self.env_config = self._load_env_config()

    @property
    def config_path(self) -> Path:
        return Path.home() / CONFIG_FILE_NAME

    def _load_user_config(self) -> Dict:
        """Load user configuration from ~/.textsweeprc if it exists."""
        config_path = self.config_path
        if config_path.exists():
            try:
                with open(config_path, 'r') as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Ignoring unreadable config file {config_path}: {e}")
                return {}
            if not isinstance(data, dict):
                logger.warning(f"Ignoring config file {config_path}: expected a mapping")
                return {}
            return data
        return {}

    def _load_env_config(self) -> Dict:
        values = {}
        for key, (variable, cast) in ENV_OVERRIDES.items():
            raw = os.getenv(variable)
            if raw is None or raw == "":
                continue
            try:
                values[key] = cast(raw)
            except ValueError:
                logger.warning(f"Ignoring invalid value {raw!r} for {variable}")
        return values

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        if key in self.env_config:
            return self.env_config[key]
        if key in self.user_config:
            return self.user_config[key]
        return DEFAULTS.get(key, default)

    def get_batch_size(self) -> int:
        return self._bounded_number("batch_size", int, minimum=1)

    def get_pattern_timeout(self) -> float:
        return self._bounded_number("pattern_timeout", float, minimum=0.0)

    def get_max_results(self) -> int:
        """Result cap for one scan; 0 means unlimited."""
        return self._bounded_number("max_results", int, minimum=0)

    def get_failure_summary_threshold(self) -> int:
        return self._bounded_number("failure_summary_threshold", int, minimum=0)

    def get_log_level(self) -> str:
        level = str(self.get("log_level")).upper()
        if level not in LOG_LEVELS:
            logger.warning(f"Unknown log level {level!r}, using {DEFAULTS['log_level']}")
            return DEFAULTS["log_level"]
        return level

    def confirm_destructive_actions(self) -> bool:
        return bool(self.get("confirm_destructive_actions"))

    def get_search_options(self) -> SearchOptions:
        """Default search flags, user settings layered over the built-in ones."""
        options = dict(DEFAULTS["search_options"])
        user_options = self.get("search_options") or {}
        if isinstance(user_options, dict):
            options.update(user_options)
        return SearchOptions.from_dict(options)

    def get_default_filter(self) -> DocumentFilter:
        return DocumentFilter(
            include_patterns=self._string_list("default_include_patterns"),
            exclude_patterns=self._string_list("default_exclude_patterns"),
        )

    def set(self, key: str, value: Any) -> None:
        """Set a value in the user configuration and save it."""
        self.user_config[key] = value
        self._save_user_config()

    def override(self, key: str, value: Any) -> None:
        """Override a value for this process only, without saving it."""
        self.env_config[key] = value

    def _bounded_number(self, key: str, cast, minimum):
        value = self.get(key)
        try:
            value = cast(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid {key} {value!r}, using {DEFAULTS[key]}")
            return DEFAULTS[key]
        if value < minimum:
            logger.warning(f"{key} must be at least {minimum}, using {DEFAULTS[key]}")
            return DEFAULTS[key]
        return value

    def _string_list(self, key: str) -> List[str]:
        value = self.get(key) or []
        if isinstance(value, str):
            return [value]
        return [str(item) for item in value]

    def _save_user_config(self) -> None:
        """Save user configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                yaml.dump(self.user_config, f, default_flow_style=False)
        except OSError as e:
            logger.warning(f"Could not save config to {self.config_path}: {e}")

    def create_default_config(self) -> Path:
        """Create a default .textsweeprc file for the user."""
        config_path = self.config_path
        with open(config_path, 'w') as f:
            yaml.dump(DEFAULTS, f, default_flow_style=False)
        return config_path
