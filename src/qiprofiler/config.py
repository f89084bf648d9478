"""
Configuration system for qiprofiler.

Implements 12-factor config principles:
- Environment variables as primary config source
- Optional JSON config file for local development
- Per-environment profiles

Usage:
    from qiprofiler.config import get_config

    config = get_config()
    profiler = Profiler.parse(path, config=config.trace_config())

Environment variables:
    QIPROFILER_ENVIRONMENT=production
    QIPROFILER_IGNORE_INVALID_LINES=true
    QIPROFILER_SKIP_VERSION_CHECK=true
    QIPROFILER_SKIP_CONSISTENCY_CHECKS=true
    QIPROFILER_SHOW_PROGRESS=false
    QIPROFILER_MAX_FILE_SIZE_MB=4096
    QIPROFILER_LOG_LEVEL=DEBUG
    QIPROFILER_REPORT_BLAME_CONFLICTS=false
    QIPROFILER_CONFIG_FILE=qiprofiler.json
"""

from __future__ import annotations

import json
import logging
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from qiprofiler.exceptions import ConfigurationError
from qiprofiler.trace.config import TraceConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "QIPROFILER_"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Environment(str, Enum):
    """Environment profiles with different default behaviors."""

    DEVELOPMENT = "development"
    CI = "ci"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """Parse environment from string, defaulting to development."""
        try:
            return cls(value.lower())
        except ValueError:
            return cls.DEVELOPMENT


class Config(BaseModel):
    """
    qiprofiler configuration.

    Loaded from environment variables and optional config file.
    Trace-parsing switches are forwarded to TraceConfig; the defaults are
    lenient because solver logs routinely contain lines from newer Z3
    releases.
    """

    model_config = ConfigDict(frozen=True)

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Current environment (development/ci/production)",
    )

    # Trace parsing
    ignore_invalid_lines: bool = Field(
        default=True,
        description="Skip unparseable trace lines",
    )
    skip_version_check: bool = Field(
        default=True,
        description="Accept logs from any Z3 version",
    )
    skip_consistency_checks: bool = Field(
        default=True,
        description="Skip instance lines referring to unknown instantiations",
    )
    show_progress: bool = Field(
        default=True,
        description="Show a progress bar while reading the trace",
    )
    max_file_size_mb: float = Field(
        default=2048.0,
        gt=0,
        description="Maximum trace size in megabytes",
    )

    # Analysis
    report_blame_conflicts: bool = Field(
        default=True,
        description="Warn about terms produced by several instantiations",
    )

    # Logging
    log_level: str = Field(
        default="WARNING",
        description="Log level for the CLI",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    def trace_config(self) -> TraceConfig:
        """Parser settings derived from this configuration."""
        return TraceConfig(
            skip_version_check=self.skip_version_check,
            ignore_invalid_lines=self.ignore_invalid_lines,
            skip_consistency_checks=self.skip_consistency_checks,
            show_progress=self.show_progress,
            max_file_size_mb=self.max_file_size_mb,
        )


def _parse_env_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_env_float(value: str | None, default: float) -> float:
    """Parse float from environment variable."""
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Could not parse float %r, using %s", value, default)
        return default


def _env(name: str) -> str | None:
    return os.environ.get(f"{ENV_PREFIX}{name}")


def load_config_from_env() -> Config:
    """
    Load configuration from environment variables.

    Raises:
        ConfigurationError: If a value fails validation (e.g. log level).
    """
    environment = Environment.from_string(_env("ENVIRONMENT") or "development")

    config_kwargs: dict[str, Any] = {
        "environment": environment,
        "ignore_invalid_lines": _parse_env_bool(_env("IGNORE_INVALID_LINES"), True),
        "skip_version_check": _parse_env_bool(_env("SKIP_VERSION_CHECK"), True),
        "skip_consistency_checks": _parse_env_bool(
            _env("SKIP_CONSISTENCY_CHECKS"), True
        ),
        # Progress bars only clutter CI logs
        "show_progress": _parse_env_bool(
            _env("SHOW_PROGRESS"), environment != Environment.CI
        ),
        "max_file_size_mb": _parse_env_float(_env("MAX_FILE_SIZE_MB"), 2048.0),
        "report_blame_conflicts": _parse_env_bool(
            _env("REPORT_BLAME_CONFLICTS"), True
        ),
        "log_level": _env("LOG_LEVEL") or "WARNING",
    }

    return _build_config(config_kwargs, source="environment")


def load_config_from_file(path: Path) -> Config:
    """
    Load configuration from a JSON file.

    Falls back to environment variables if the file does not exist.

    Raises:
        ConfigurationError: If the file is not valid JSON or fails validation.
    """
    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Cannot load config file {path}: {e}", config_key="QIPROFILER_CONFIG_FILE"
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a JSON object",
            config_key="QIPROFILER_CONFIG_FILE",
        )

    return _build_config(data, source=str(path))


def _build_config(data: dict[str, Any], source: str) -> Config:
    try:
        return Config(**data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(x) for x in first["loc"])
        raise ConfigurationError(
            f"Invalid configuration from {source}: {key}: {first['msg']}",
            config_key=key,
        ) from e


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global configuration instance.

    Loads from:
    1. QIPROFILER_CONFIG_FILE environment variable (if set)
    2. Environment variables (default)

    Result is cached for the lifetime of the process.
    """
    config_file = _env("CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
