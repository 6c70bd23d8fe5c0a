"""DramaForge configuration settings."""

from __future__ import annotations

import json
import os
import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dramaforge.exceptions import ConfigurationError


class DramaForgeSettings(BaseSettings):
    """DramaForge configuration settings.

    Settings are loaded with the following precedence (highest to lowest):
    1. Explicit keyword arguments (CLI flags end up here)
    2. Config file values (YAML, TOML, or JSON)
       Example: dramaforge --config dramaforge.yaml
    3. Environment variables (prefixed with DRAMAFORGE_)
       Example: export DRAMAFORGE_STORE_PATH=/data/dramaforge
    4. .env file in the current directory
    5. Default values (defined in field declarations below)
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAMAFORGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Store settings
    store_path: Path = Field(
        default_factory=lambda: Path.cwd() / ".dramaforge",
        description="Directory holding the JSON key-value store",
    )
    store_backend: str = Field(
        default="file",
        description="Key-value substrate (file, memory)",
        pattern="^(file|memory)$",
    )

    # Backend selection
    mode: str = Field(
        default="local",
        description="Run against the local engine or a remote backend (local, remote)",
        pattern="^(local|remote)$",
    )
    remote_base_url: str = Field(
        default="http://localhost:5678/api/v1",
        description="Base URL of the remote backend used in remote mode",
    )
    remote_timeout: float = Field(
        default=30.0,
        description="HTTP timeout in seconds for remote backend calls",
        ge=0.1,
    )

    # Generation engine settings
    poll_interval: float = Field(
        default=5.0,
        description="Seconds between provider task status queries",
        ge=0.0,
    )
    poll_max_attempts: int = Field(
        default=60,
        description="Maximum provider task status queries before timing out",
        ge=1,
    )
    provider_timeout: float = Field(
        default=120.0,
        description="HTTP timeout in seconds for provider calls",
        ge=0.1,
    )
    text_temperature: float = Field(
        default=0.7,
        description="Default temperature for text generation",
        ge=0.0,
        le=2.0,
    )
    text_max_tokens: int = Field(
        default=4000,
        description="Default max tokens for text generation",
        ge=1,
    )
    default_page_size: int = Field(
        default=20,
        description="Page size used by list operations when none is given",
        ge=1,
    )

    # Debug settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Logging settings
    log_level: str = Field(
        default="WARNING",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        pattern="^(?i)(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    log_format: str = Field(
        default="console",
        description="Log output format (console, json, structured)",
        pattern="^(?i)(console|json|structured)$",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional log file path",
    )

    @field_validator("store_path", "log_file", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path | None:
        """Expand environment variables and ~ in path fields."""
        if v is None:
            return None
        if isinstance(v, str):
            return Path(os.path.expandvars(v)).expanduser().resolve()
        if isinstance(v, Path):
            return v.resolve()
        raise ValueError(
            f"Path fields must be str or Path, got {type(v).__name__}: {v!r}"
        )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Normalize log level to uppercase for case-insensitive handling."""
        if isinstance(v, str):
            return v.upper()
        raise ValueError(f"log_level must be a string, got {type(v).__name__}")

    @field_validator("log_format", "mode", "store_backend", mode="before")
    @classmethod
    def normalize_lowercase(cls, v: Any) -> str:
        """Normalize enumerated string settings to lowercase."""
        if isinstance(v, str):
            return v.strip().lower()
        raise ValueError(f"Expected a string, got {type(v).__name__}")

    @field_validator("remote_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Remote paths are joined with a leading slash."""
        return v.rstrip("/")

    @classmethod
    def from_file(cls, config_path: Path | str) -> DramaForgeSettings:
        """Load settings from a configuration file.

        Args:
            config_path: Path to configuration file (YAML, TOML, or JSON).

        Returns:
            Settings loaded from the file.

        Raises:
            ConfigurationError: If the file format is not supported.
            FileNotFoundError: If config file doesn't exist.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        suffix = config_path.suffix.lower()

        if suffix in {".yml", ".yaml"}:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            with config_path.open("rb") as f:
                data = tomllib.load(f)
        elif suffix == ".json":
            with config_path.open(encoding="utf-8") as f:
                data = json.load(f)
        else:
            raise ConfigurationError(
                message=f"Unsupported configuration file format: {suffix}",
                hint="Use one of the supported formats: .yml, .yaml, .toml, or .json",
                details={
                    "file": str(config_path),
                    "detected_format": suffix,
                },
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                message="Configuration file must contain a mapping at the top level",
                details={"file": str(config_path)},
            )

        return cls(**data)

    @classmethod
    def from_sources(
        cls,
        config_file: Path | str | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> DramaForgeSettings:
        """Load settings from an optional file plus explicit overrides.

        None values in ``overrides`` are ignored so CLI flags that were not
        given do not mask file or environment values.
        """
        data: dict[str, Any] = {}
        if config_file:
            data.update(
                cls.from_file(config_file).model_dump(exclude_unset=True)
            )
        if overrides:
            data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)


# Global settings instance
_settings: DramaForgeSettings | None = None


def _default_config_paths() -> list[Path]:
    """Project-level config files checked when none is given explicitly."""
    candidates = [
        Path.home() / ".config" / "dramaforge" / "config.yaml",
        Path.cwd() / "dramaforge.yaml",
        Path.cwd() / "dramaforge.toml",
        Path.cwd() / "dramaforge.json",
    ]
    return [path for path in candidates if path.is_file()]


def get_settings() -> DramaForgeSettings:
    """Get the global settings instance.

    The last existing default config file wins; environment variables still
    apply on top of file values only where the file is silent.
    """
    global _settings
    if _settings is None:
        paths = _default_config_paths()
        _settings = DramaForgeSettings.from_sources(
            config_file=paths[-1] if paths else None
        )
    return _settings


def set_settings(settings: DramaForgeSettings) -> None:
    """Set the global settings instance."""
    global _settings
    _settings = settings


def clear_settings_cache() -> None:
    """Force get_settings() to re-read environment and files on next call."""
    global _settings
    _settings = None


def reset_settings() -> None:
    """Reset the global settings instance."""
    clear_settings_cache()
