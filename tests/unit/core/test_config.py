"""Unit tests for genflow.core.config module."""

import os
import warnings

import pytest

from genflow.core.config import (
    LoggingConfig,
    Settings,
    create_settings,
    get_settings,
    load_config_file,
    load_yaml_file,
    reset_settings,
)
from genflow.core.exceptions import ConfigurationError


class TestDefaults:
    def test_settings_defaults(self):
        settings = Settings()

        assert settings.queues.standard_concurrency == 3
        assert settings.queues.heavy_concurrency == 1
        assert settings.retry.max_attempts == 5
        assert settings.retry.base_delay == 3.0
        assert settings.retry.max_jitter == 1.0
        assert settings.poller.interval == 12.0
        assert settings.poller.start_attempts == 5
        assert settings.poller.start_base_delay == 8.0
        assert settings.batch.inter_call_delay == 2.0
        assert settings.batch.thumbnail_count == 5
        assert settings.guards.max_length == 5000
        assert settings.backend.timeout == 120.0
        assert settings.backend.models.video == "veo-3.1-fast-generate-preview"

    def test_logging_alias(self):
        settings = Settings(logging={"level": "debug"})
        assert settings.logging.level == "DEBUG"
        assert settings.logging is settings.logging_config

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            LoggingConfig(level="LOUD")

    def test_invalid_log_format_rejected(self):
        with pytest.raises(ValueError, match="Invalid log format"):
            LoggingConfig(format="xml")

    def test_zero_concurrency_rejected(self):
        with pytest.raises(ValueError):
            Settings(queues={"standard_concurrency": 0})


class TestEnvironment:
    def test_env_overrides_nested_value(self, monkeypatch):
        monkeypatch.setenv("GENFLOW_RETRY__MAX_ATTEMPTS", "2")
        monkeypatch.setenv("GENFLOW_BACKEND__API_KEY", "env-key")

        settings = Settings()

        assert settings.retry.max_attempts == 2
        assert settings.backend.api_key.get_secret_value() == "env-key"


class TestLoading:
    def test_load_yaml_file(self, fixtures_dir):
        data = load_yaml_file(fixtures_dir / "config.yaml")
        assert data["retry"]["max_attempts"] == 3

    def test_load_yaml_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_yaml_file(tmp_path / "missing.yaml")

    def test_load_yaml_invalid(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("retry: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_yaml_file(path)

    def test_load_empty_yaml_returns_empty_dict(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}

    def test_load_config_file_default_missing_is_empty(self, tmp_path, monkeypatch):
        monkeypatch.setattr("genflow.core.config.DEFAULT_CONFIG_DIR", tmp_path)
        assert load_config_file() == {}

    def test_create_settings_from_file(self, fixtures_dir):
        settings = create_settings(config_path=fixtures_dir / "config.yaml")

        assert settings.backend.base_url == "https://example.test/v1beta"
        assert settings.backend.timeout == 30
        assert settings.backend.models.text == "test-text-model"
        assert settings.backend.models.image == "gemini-2.5-flash-image"
        assert settings.retry.max_attempts == 3
        assert settings.queues.standard_concurrency == 2
        assert settings.logging.level == "DEBUG"
        assert settings.logging.format == "console"

    def test_runtime_overrides_win(self, fixtures_dir):
        settings = create_settings(
            config_path=fixtures_dir / "config.yaml",
            runtime_overrides={"retry": {"max_attempts": 7}},
        )
        assert settings.retry.max_attempts == 7
        assert settings.retry.base_delay == 1.5

    def test_environment_beats_config_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("retry:\n  max_attempts: 3\n  base_delay: 1.5\n")
        monkeypatch.setenv("GENFLOW_RETRY__MAX_ATTEMPTS", "2")

        settings = create_settings(config_path=path)

        assert settings.retry.max_attempts == 2
        assert settings.retry.base_delay == 1.5

    def test_runtime_overrides_beat_environment(self, fixtures_dir, monkeypatch):
        monkeypatch.setenv("GENFLOW_RETRY__MAX_ATTEMPTS", "2")

        settings = create_settings(
            config_path=fixtures_dir / "config.yaml",
            runtime_overrides={"retry": {"max_attempts": 7}},
        )

        assert settings.retry.max_attempts == 7
        assert settings.retry.base_delay == 1.5

    def test_file_layer_does_not_leak_into_plain_settings(self, fixtures_dir):
        create_settings(config_path=fixtures_dir / "config.yaml")
        assert Settings().retry.max_attempts == 5

    def test_invalid_values_raise_configuration_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("queues:\n  heavy_concurrency: -1\n")
        with pytest.raises(ConfigurationError, match="validation failed"):
            create_settings(config_path=path)

    def test_dotenv_next_to_config_is_loaded(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GENFLOW_BACKEND__API_KEY", raising=False)
        (tmp_path / "config.yaml").write_text("retry:\n  max_attempts: 4\n")
        (tmp_path / ".env").write_text("GENFLOW_BACKEND__API_KEY=dotenv-key\n")

        try:
            settings = create_settings(config_path=tmp_path / "config.yaml")
            assert settings.backend.api_key.get_secret_value() == "dotenv-key"
        finally:
            os.environ.pop("GENFLOW_BACKEND__API_KEY", None)


class TestSingleton:
    def test_get_settings_caches(self, tmp_path, monkeypatch):
        monkeypatch.setattr("genflow.core.config.DEFAULT_CONFIG_DIR", tmp_path)
        first = get_settings()
        assert get_settings() is first

    def test_force_reload_builds_new_instance(self, fixtures_dir):
        first = get_settings(config_path=fixtures_dir / "config.yaml")
        second = get_settings(
            force_reload=True,
            config_path=fixtures_dir / "config.yaml",
            runtime_overrides={"retry": {"max_attempts": 9}},
        )
        assert second is not first
        assert second.retry.max_attempts == 9

    def test_ignored_arguments_warn(self, fixtures_dir):
        get_settings(config_path=fixtures_dir / "config.yaml")
        with pytest.warns(RuntimeWarning, match="ignored"):
            get_settings(runtime_overrides={"retry": {"max_attempts": 1}})

    def test_reset_settings(self, fixtures_dir):
        first = get_settings(config_path=fixtures_dir / "config.yaml")
        reset_settings()
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            second = get_settings(config_path=fixtures_dir / "config.yaml")
        assert second is not first
