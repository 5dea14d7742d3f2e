"""genflow Configuration System.

Layered YAML configuration with Pydantic validation.

Config Layer Priority (highest to lowest):
1. Runtime overrides (in-memory)
2. Environment variables (GENFLOW_ prefix, ``__`` for nesting)
3. Config file (~/.genflow/config.yaml)
4. Defaults (defined in Pydantic models)

Usage:
    from genflow.core.config import get_settings

    settings = get_settings()
    print(settings.queues.standard_concurrency)  # 3 (default)
"""

from __future__ import annotations

import threading
import warnings
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, PositiveFloat, PositiveInt, SecretStr, field_validator
from pydantic_settings import (
    BaseSettings,
    InitSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from genflow.core.exceptions import ConfigurationError


DEFAULT_CONFIG_DIR = Path.home() / ".genflow"

# Parsed config file contents for the Settings instance being built
_file_layer: ContextVar[Dict[str, Any]] = ContextVar("genflow_file_layer", default={})


# =============================================================================
# Sub-configuration Models (nested sections)
# =============================================================================


class ModelsConfig(BaseModel):
    """Backend model identifiers per capability."""

    text: str = "gemini-2.5-flash"
    image: str = "gemini-2.5-flash-image"
    pro_image: str = "gemini-3-pro-image-preview"
    speech: str = "gemini-2.5-flash-preview-tts"
    video: str = "veo-3.1-fast-generate-preview"


class BackendConfig(BaseModel):
    """Generation backend connection configuration."""

    api_key: Optional[SecretStr] = None
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout: PositiveFloat = 120.0  # seconds, per HTTP call
    models: ModelsConfig = Field(default_factory=ModelsConfig)


class RetryConfig(BaseModel):
    """Retry policy for one-shot generation calls."""

    max_attempts: PositiveInt = 5
    base_delay: PositiveFloat = 3.0  # seconds
    max_jitter: float = Field(default=1.0, ge=0.0)


class QueueConfig(BaseModel):
    """Concurrency ceilings for the two task queues."""

    standard_concurrency: PositiveInt = 3
    heavy_concurrency: PositiveInt = 1


class PollerConfig(BaseModel):
    """Long-running job polling configuration."""

    interval: PositiveFloat = 12.0  # seconds between polls
    start_attempts: PositiveInt = 5
    start_base_delay: PositiveFloat = 8.0


class BatchConfig(BaseModel):
    """Sequential batch helper configuration."""

    inter_call_delay: float = Field(default=2.0, ge=0.0)
    thumbnail_count: PositiveInt = 5


class GuardConfig(BaseModel):
    """Input guard configuration."""

    enabled: bool = True
    max_length: PositiveInt = 5000
    max_requests: PositiveInt = 15
    window_seconds: PositiveFloat = 60.0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate renderer name."""
        if v.lower() not in {"json", "console"}:
            raise ValueError(f"Invalid log format: {v}. Must be 'json' or 'console'")
        return v.lower()


# =============================================================================
# Main Settings
# =============================================================================


class Settings(BaseSettings):
    """Main settings class with layered configuration support."""

    model_config = SettingsConfigDict(
        env_prefix="GENFLOW_",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    backend: BackendConfig = Field(default_factory=BackendConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    queues: QueueConfig = Field(default_factory=QueueConfig)
    poller: PollerConfig = Field(default_factory=PollerConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    guards: GuardConfig = Field(default_factory=GuardConfig)
    logging_config: LoggingConfig = Field(
        default_factory=LoggingConfig, alias="logging"
    )

    @property
    def logging(self) -> LoggingConfig:
        """Alias for logging_config to match the YAML key."""
        return self.logging_config

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Rank the YAML file below the environment and above defaults."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            InitSettingsSource(settings_cls, _file_layer.get()),
            file_secret_settings,
        )


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file.

    Raises:
        ConfigurationError: If file cannot be read or parsed.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
            return content if content else {}
    except FileNotFoundError:
        raise ConfigurationError(
            config_path=str(path),
            message=f"Configuration file not found: {path}",
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(
            config_path=str(path),
            message=f"Invalid YAML in {path}: {e}",
        )


def load_config_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from a YAML file.

    A missing default file yields an empty dict; a missing explicit
    path is an error.
    """
    if path is None:
        path = DEFAULT_CONFIG_DIR / "config.yaml"
        if not path.exists():
            return {}

    return load_yaml_file(Path(path).expanduser())


def create_settings(
    config_path: Optional[Path] = None,
    runtime_overrides: Optional[Dict[str, Any]] = None,
) -> Settings:
    """Create a Settings instance with layered configuration.

    Args:
        config_path: Optional path to the YAML config file.
        runtime_overrides: Optional runtime overrides dictionary.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    config_base = Path(config_path).expanduser().parent if config_path else DEFAULT_CONFIG_DIR

    # Secrets (API key) usually live in .env next to the config file
    env_path = config_base / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    file_config = load_config_file(config_path)

    # Runtime overrides are constructor arguments; the file is a source
    # ranked below the environment.
    token = _file_layer.set(file_config)
    try:
        return Settings(**(runtime_overrides or {}))
    except Exception as e:
        raise ConfigurationError(
            config_path=str(config_path or DEFAULT_CONFIG_DIR / "config.yaml"),
            message=f"Configuration validation failed: {e}",
        ) from e
    finally:
        _file_layer.reset(token)


# =============================================================================
# Singleton Settings Access
# =============================================================================


class _SettingsHolder:
    """Thread-safe singleton holder for the Settings instance."""

    _instance: Optional[Settings] = None
    _lock: threading.Lock = threading.Lock()

    @classmethod
    def get(cls, force_reload: bool = False, **kwargs: Any) -> Settings:
        if cls._instance is None or force_reload:
            with cls._lock:
                if cls._instance is None or force_reload:  # pragma: no cover
                    cls._instance = create_settings(**kwargs)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._instance = None


def get_settings(
    force_reload: bool = False,
    config_path: Optional[Path] = None,
    runtime_overrides: Optional[Dict[str, Any]] = None,
) -> Settings:
    """Get the global Settings singleton.

    Settings are loaded once and cached for subsequent calls.

    Examples:
        >>> settings = get_settings()
        >>> settings = get_settings(force_reload=True, runtime_overrides={"retry": {"max_attempts": 2}})
    """
    if not force_reload and _SettingsHolder._instance is not None:
        if config_path is not None or runtime_overrides is not None:
            warnings.warn(
                "Arguments provided to get_settings() are ignored because "
                "singleton is already initialized. Use force_reload=True "
                "to apply new configuration.",
                RuntimeWarning,
                stacklevel=2,
            )

    return _SettingsHolder.get(
        force_reload=force_reload,
        config_path=config_path,
        runtime_overrides=runtime_overrides,
    )


def reset_settings() -> None:
    """Reset the settings singleton (for testing)."""
    _SettingsHolder.reset()
