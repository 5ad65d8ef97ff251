"""
Test suite for configuration loading.
Tests config.yaml/.env parsing, environment overrides and logging setup.
"""

import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from loguru import logger

import measurement
from measurement.config import (
    DEFAULT_CONFIG_PATH,
    ConfigError,
    MeasurementSettings,
    configure_logging,
    load_settings,
)


PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def clean_env(monkeypatch):
    """Remove measurement variables so the developer's .env does not leak in."""
    monkeypatch.delenv("MEASUREMENT_API_SECRET", raising=False)
    monkeypatch.delenv("MEASUREMENT_ID", raising=False)


@pytest.fixture
def empty_env_file(tmp_path):
    env_path = tmp_path / ".env"
    env_path.write_text("")
    return env_path


def write_config(tmp_path: Path, content: str) -> Path:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(content)
    return config_path


class TestProjectConfigurationFiles:
    """Test the configuration files shipped with the project."""

    def test_config_yaml_parses(self):
        with open(DEFAULT_CONFIG_PATH, 'r') as f:
            config = yaml.safe_load(f)

        assert isinstance(config, dict)
        for key in ("processor", "processor_options", "storage", "storage_options"):
            assert key in config, f"Required key '{key}' not found in config.yaml"

    def test_env_example_has_required_keys(self):
        content = (PROJECT_ROOT / ".env.example").read_text()

        assert "MEASUREMENT_API_SECRET" in content
        assert "MEASUREMENT_ID" in content

    def test_default_config_loads(self, clean_env, empty_env_file):
        settings = load_settings(env_path=empty_env_file)

        assert settings.processor == "googleAnalytics"
        assert settings.storage == "memory"

    def test_default_config_ships_with_package(self):
        """Test the default config lives inside the importable package."""
        assert DEFAULT_CONFIG_PATH.parent == Path(measurement.__file__).parent
        assert DEFAULT_CONFIG_PATH.is_file()


class TestLoadSettings:
    """Test load_settings() parsing and validation."""

    def test_load_minimal(self, tmp_path, clean_env, empty_env_file):
        config_path = write_config(tmp_path, "storage: memory\n")

        settings = load_settings(config_path, env_path=empty_env_file)

        assert settings.processor == "googleAnalytics"
        assert settings.log_level == "INFO"
        assert settings.config_args() == ("googleAnalytics", {}, "memory", {})

    def test_file_not_found(self, tmp_path):
        with pytest.raises(ConfigError, match="Configuration file not found"):
            load_settings(tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path):
        config_path = write_config(tmp_path, "")
        with pytest.raises(ConfigError, match="Configuration file is empty"):
            load_settings(config_path)

    def test_invalid_yaml(self, tmp_path):
        config_path = write_config(tmp_path, "storage: [unclosed\n")
        with pytest.raises(ConfigError, match="Failed to parse configuration file"):
            load_settings(config_path)

    def test_non_mapping(self, tmp_path):
        config_path = write_config(tmp_path, "- a\n- b\n")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_settings(config_path)

    def test_missing_storage(self, tmp_path, clean_env, empty_env_file):
        config_path = write_config(tmp_path, "processor: googleAnalytics\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_settings(config_path, env_path=empty_env_file)

    def test_invalid_log_level(self, tmp_path, clean_env, empty_env_file):
        config_path = write_config(tmp_path, "storage: memory\nlog_level: LOUD\n")
        with pytest.raises(ConfigError, match="log_level"):
            load_settings(config_path, env_path=empty_env_file)

    def test_log_level_normalised(self, tmp_path, clean_env, empty_env_file):
        config_path = write_config(tmp_path, "storage: memory\nlog_level: debug\n")
        assert load_settings(config_path, env_path=empty_env_file).log_level == "DEBUG"


class TestEnvironmentOverrides:
    """Test secrets supplied through the environment."""

    def test_env_fills_processor_options(self, tmp_path, clean_env, empty_env_file):
        config_path = write_config(tmp_path, "storage: memory\n")

        with patch.dict(os.environ, {"MEASUREMENT_API_SECRET": "s3cret", "MEASUREMENT_ID": "G-1"}):
            settings = load_settings(config_path, env_path=empty_env_file)

        assert settings.processor_options == {"api_secret": "s3cret", "measurement_id": "G-1"}

    def test_yaml_value_wins_over_env(self, tmp_path, clean_env, empty_env_file):
        config_path = write_config(
            tmp_path,
            "storage: memory\nprocessor_options:\n  measurement_id: G-YAML\n",
        )

        with patch.dict(os.environ, {"MEASUREMENT_ID": "G-ENV"}):
            settings = load_settings(config_path, env_path=empty_env_file)

        assert settings.processor_options["measurement_id"] == "G-YAML"

    def test_env_file_is_loaded(self, tmp_path, clean_env):
        config_path = write_config(tmp_path, "storage: memory\n")
        env_path = tmp_path / ".env"
        env_path.write_text("MEASUREMENT_API_SECRET=from-file\n")

        try:
            settings = load_settings(config_path, env_path=env_path)
        finally:
            os.environ.pop("MEASUREMENT_API_SECRET", None)

        assert settings.processor_options["api_secret"] == "from-file"


class TestMeasurementSettings:
    """Test the settings model directly."""

    def test_config_args_are_copies(self):
        settings = MeasurementSettings(storage="memory", processor_options={"a": 1})
        args = settings.config_args()
        args[1]["a"] = 2

        assert settings.processor_options == {"a": 1}


class TestConfigureLogging:
    """Test logging setup."""

    def test_configure_logging_filters_by_level(self):
        messages = []
        handler_id = configure_logging("WARNING", sink=messages.append)
        try:
            logger.info("hidden")
            logger.warning("shown")
        finally:
            logger.remove(handler_id)
            logger.add(sys.stderr)

        assert len(messages) == 1
        assert "shown" in messages[0]
