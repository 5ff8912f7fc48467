# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for Mapper Links."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from mapper_links.models import FileOpenMode, NameMatchingRule, PathPriorityConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".mapper_links.yml"


class ConfigurationError(Exception):
    """Raised when configuration validation fails critically."""

    pass


class Config:
    """Configuration for the mapper navigation engine.

    Loads configuration from .mapper_links.yml with validation and defaults.
    Invalid entries are logged and replaced by their defaults; the engine never
    refuses to start because of a bad configuration file.
    """

    DEFAULTS: Dict[str, Any] = {
        "debounce_interval_ms": 500,
        "create_debounce_ms": 1000,
        "jump_throttle_ms": 1000,
        "navigation_timeout_seconds": 5.0,
        "scan_batch_size": 100,
        "file_open_mode": FileOpenMode.USE_EXISTING,
        "custom_statement_directories": [],
        "name_matching_rules": [],
        "ignored_suffixes": ["Mapper", "Dao", "Repository", "Service"],
        "path_priority": {
            "enabled": True,
            "priority_directories": ["src/main/resources", "src/main/java"],
            "exclude_directories": ["target", "build", "out", "bin"],
        },
        "exclude_directories": [".git", "node_modules", "target", "build", "out"],
        "include_test_directories": False,
        "discover_mapper_locations": True,
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default location.
        """
        if config_path is None:
            config_path = Path.cwd() / CONFIG_FILENAME

        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._load_config()

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "Config":
        """Build a configuration from an in-memory mapping.

        Used by hosts that push settings directly (and by tests). Values go
        through the same validation as values read from disk.
        """
        config = cls.__new__(cls)
        config.config_path = None
        config._config = cls._fresh_defaults()
        config._validate_and_merge(values)
        return config

    @classmethod
    def _fresh_defaults(cls) -> Dict[str, Any]:
        # Deep enough copy so that list/dict defaults are never shared
        defaults = {}
        for key, value in cls.DEFAULTS.items():
            if isinstance(value, dict):
                defaults[key] = dict(value)
            elif isinstance(value, list):
                defaults[key] = list(value)
            else:
                defaults[key] = value
        return defaults

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            self._config = self._fresh_defaults()
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)

            if loaded_config is None:
                logger.warning("Configuration file is empty, using defaults")
                self._config = self._fresh_defaults()
                return

            if not isinstance(loaded_config, dict):
                logger.warning(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(loaded_config)}, using defaults"
                )
                self._config = self._fresh_defaults()
                return

            self._config = self._fresh_defaults()
            self._validate_and_merge(loaded_config)

        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self._fresh_defaults()
        except OSError as e:
            logger.warning(
                f"Unexpected error loading configuration file "
                f"{self.config_path}: {e}, using defaults"
            )
            self._config = self._fresh_defaults()

    def _validate_and_merge(self, loaded_config: Dict[str, Any]) -> None:
        """Validate loaded configuration and merge with defaults.

        Invalid parameters are logged as warnings and defaults are used.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            # YAML has no float/int distinction for whole numbers
            if key == "navigation_timeout_seconds" and isinstance(value, int):
                if not isinstance(value, bool):
                    value = float(value)

            if not self._validate_parameter(key, value):
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            if key == "path_priority":
                merged = dict(self.DEFAULTS["path_priority"])
                merged.update(value)
                value = merged

            self._config[key] = value

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        expected_type = type(self.DEFAULTS[key])
        if isinstance(value, bool) and expected_type is not bool:
            return False
        if not isinstance(value, expected_type):
            return False

        if key in (
            "debounce_interval_ms",
            "create_debounce_ms",
            "jump_throttle_ms",
        ):
            return value >= 0
        elif key == "scan_batch_size":
            return value > 0
        elif key == "navigation_timeout_seconds":
            return 0 < value <= 600
        elif key == "file_open_mode":
            return value in FileOpenMode.ALL
        elif key in ("custom_statement_directories", "ignored_suffixes", "exclude_directories"):
            return all(isinstance(item, str) for item in value)
        elif key == "name_matching_rules":
            # Individual malformed rules are dropped later, one warning per rule
            return all(isinstance(item, dict) for item in value)
        elif key == "path_priority":
            for sub_key, sub_value in value.items():
                if sub_key == "enabled":
                    if not isinstance(sub_value, bool):
                        return False
                elif sub_key in ("priority_directories", "exclude_directories"):
                    if not isinstance(sub_value, list):
                        return False
                    if not all(isinstance(item, str) for item in sub_value):
                        return False
                else:
                    return False
            return True

        return True

    @property
    def debounce_interval_seconds(self) -> float:
        """Trailing debounce window for change events, in seconds."""
        value = self._config["debounce_interval_ms"]
        assert isinstance(value, int)
        return value / 1000.0

    @property
    def create_debounce_seconds(self) -> float:
        """Trailing debounce window for create events, in seconds."""
        value = self._config["create_debounce_ms"]
        assert isinstance(value, int)
        return value / 1000.0

    @property
    def jump_throttle_seconds(self) -> float:
        """Cooldown between two jumps of the same kind, in seconds."""
        value = self._config["jump_throttle_ms"]
        assert isinstance(value, int)
        return value / 1000.0

    @property
    def navigation_timeout_seconds(self) -> float:
        """Hard deadline for resolving a single navigation request."""
        value = self._config["navigation_timeout_seconds"]
        assert isinstance(value, float)
        return value

    @property
    def scan_batch_size(self) -> int:
        """Number of candidate files processed between liveness checks."""
        value = self._config["scan_batch_size"]
        assert isinstance(value, int)
        return value

    @property
    def file_open_mode(self) -> str:
        """Window policy used by the jump executor."""
        value = self._config["file_open_mode"]
        assert isinstance(value, str)
        return value

    @property
    def custom_statement_directories(self) -> List[str]:
        """Workspace-relative directories searched for same-named statement files."""
        value = self._config["custom_statement_directories"]
        assert isinstance(value, list)
        return value

    @property
    def name_matching_rules(self) -> List[NameMatchingRule]:
        """Ordered, well-formed name matching rules.

        Entries missing a pattern are skipped with a single warning each,
        on first access.
        """
        cached: Optional[List[NameMatchingRule]] = self.__dict__.get("_parsed_rules")
        if cached is not None:
            return list(cached)

        rules: List[NameMatchingRule] = []
        for index, raw in enumerate(self._config["name_matching_rules"]):
            rule = NameMatchingRule.from_dict(raw)
            if rule is None:
                logger.warning(f"Skipping malformed name matching rule #{index}: {raw}")
                continue
            rules.append(rule)
        self._parsed_rules = rules
        return list(rules)

    @property
    def ignored_suffixes(self) -> List[str]:
        """Suffixes stripped from both names before the default comparison."""
        value = self._config["ignored_suffixes"]
        assert isinstance(value, list)
        return value

    @property
    def path_priority(self) -> PathPriorityConfig:
        """Sort policy for candidate statement files."""
        value = self._config["path_priority"]
        assert isinstance(value, dict)
        return PathPriorityConfig(
            enabled=value.get("enabled", True),
            priority_directories=list(value.get("priority_directories", [])),
            exclude_directories=list(value.get("exclude_directories", [])),
        )

    @property
    def exclude_directories(self) -> List[str]:
        """Directory names never enumerated or watched."""
        value = self._config["exclude_directories"]
        assert isinstance(value, list)
        return value

    @property
    def include_test_directories(self) -> bool:
        """Whether test source trees are enumerated."""
        value = self._config["include_test_directories"]
        assert isinstance(value, bool)
        return value

    @property
    def discover_mapper_locations(self) -> bool:
        """Whether mybatis-config.xml and Spring Boot settings add search directories."""
        value = self._config["discover_mapper_locations"]
        assert isinstance(value, bool)
        return value
