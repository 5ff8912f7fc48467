# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for configuration loading and validation."""

import tempfile
from pathlib import Path

import yaml

from mapper_links.config import CONFIG_FILENAME, Config
from mapper_links.models import FileOpenMode


def test_default_config_when_file_missing():
    """Test that defaults are used when config file is missing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "nonexistent.yml"
        config = Config(config_path=config_path)

        assert config.debounce_interval_seconds == 0.5
        assert config.create_debounce_seconds == 1.0
        assert config.jump_throttle_seconds == 1.0
        assert config.navigation_timeout_seconds == 5.0
        assert config.scan_batch_size == 100
        assert config.file_open_mode == FileOpenMode.USE_EXISTING
        assert config.custom_statement_directories == []
        assert config.name_matching_rules == []
        assert config.ignored_suffixes == ["Mapper", "Dao", "Repository", "Service"]
        assert config.include_test_directories is False
        assert config.discover_mapper_locations is True


def test_default_filename():
    """Test the conventional configuration file name."""
    assert CONFIG_FILENAME == ".mapper_links.yml"


def test_valid_config_loading():
    """Test loading a valid configuration file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {
            "debounce_interval_ms": 250,
            "jump_throttle_ms": 0,
            "navigation_timeout_seconds": 2,
            "file_open_mode": "alwaysSplit",
            "custom_statement_directories": ["db/statements"],
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        assert config.debounce_interval_seconds == 0.25
        assert config.jump_throttle_seconds == 0.0
        # Whole numbers are accepted for the timeout
        assert config.navigation_timeout_seconds == 2.0
        assert config.file_open_mode == FileOpenMode.ALWAYS_SPLIT
        assert config.custom_statement_directories == ["db/statements"]
        # Defaults for unspecified values
        assert config.scan_batch_size == 100


def test_invalid_parameter_values():
    """Test that invalid parameter values are rejected and defaults used."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {
            "debounce_interval_ms": -5,  # Invalid: must be >= 0
            "scan_batch_size": 0,  # Invalid: must be > 0
            "navigation_timeout_seconds": 1000.0,  # Invalid: must be <= 600
            "file_open_mode": "sideways",  # Invalid: unknown policy
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        assert config.debounce_interval_seconds == 0.5
        assert config.scan_batch_size == 100
        assert config.navigation_timeout_seconds == 5.0
        assert config.file_open_mode == FileOpenMode.USE_EXISTING


def test_invalid_parameter_types():
    """Test that invalid parameter types are rejected and defaults used."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {
            "debounce_interval_ms": "fast",
            "scan_batch_size": True,  # bool is not an int here
            "include_test_directories": "yes",
            "ignored_suffixes": ["Mapper", 3],
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        assert config.debounce_interval_seconds == 0.5
        assert config.scan_batch_size == 100
        assert config.include_test_directories is False
        assert config.ignored_suffixes == ["Mapper", "Dao", "Repository", "Service"]


def test_unknown_parameters_ignored():
    """Test that unknown parameters are logged and ignored."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_data = {"scan_batch_size": 50, "unknown_param": "value"}

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        config = Config(config_path=config_path)

        assert config.scan_batch_size == 50
        assert "unknown_param" not in config._config


def test_malformed_yaml():
    """Test that malformed YAML falls back to defaults."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        with open(config_path, "w") as f:
            f.write("scan_batch_size: [unclosed\n")

        config = Config(config_path=config_path)

        assert config.scan_batch_size == 100


def test_empty_config_file():
    """Test that an empty config file uses defaults."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        config_path.write_text("")

        config = Config(config_path=config_path)

        assert config.file_open_mode == FileOpenMode.USE_EXISTING


def test_non_dict_config_file():
    """Test that a YAML list at the top level uses defaults."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "config.yml"
        with open(config_path, "w") as f:
            yaml.dump(["a", "b"], f)

        config = Config(config_path=config_path)

        assert config.scan_batch_size == 100


def test_path_priority_partial_override():
    """Test that path_priority sub-keys merge with their defaults."""
    config = Config.from_dict({"path_priority": {"enabled": False}})

    priority = config.path_priority
    assert priority.enabled is False
    assert priority.priority_directories == ["src/main/resources", "src/main/java"]
    assert priority.exclude_directories == ["target", "build", "out", "bin"]


def test_path_priority_unknown_sub_key_rejected():
    """Test that an unknown path_priority sub-key rejects the whole value."""
    config = Config.from_dict({"path_priority": {"enabled": False, "weights": [1]}})

    assert config.path_priority.enabled is True


def test_name_matching_rules_skip_malformed():
    """Test that rules missing a pattern are skipped, the rest kept in order."""
    config = Config.from_dict(
        {
            "name_matching_rules": [
                {"name": "repo", "javaPattern": "*Mapper", "xmlPattern": "${javaName}Repository"},
                {"name": "broken", "javaPattern": "*Dao"},
                {"name": "sql", "interfacePattern": "*Dao", "statementPattern": "*Sql"},
            ]
        }
    )

    rules = config.name_matching_rules
    assert [r.name for r in rules] == ["repo", "sql"]
    assert rules[0].statement_pattern == "${javaName}Repository"


def test_from_dict_defaults_not_shared():
    """Test that list defaults are copied per instance."""
    first = Config.from_dict({})
    second = Config.from_dict({})

    first.custom_statement_directories.append("sql")

    assert second.custom_statement_directories == []
    assert Config.DEFAULTS["custom_statement_directories"] == []
