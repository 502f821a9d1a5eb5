"""
Configuration module for the legacy room migration tool.

Tuning options come from an optional YAML file; connection credentials for
both stores are only ever read from the environment and overlaid on top.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from room_migrator.constants import (
    DEFAULT_AGENT_LABEL,
    DEFAULT_BATCH_SIZE,
    DEFAULT_LEGACY_PORT,
    ENV_SOURCE_DB,
    ENV_SOURCE_HOST,
    ENV_SOURCE_PASSWORD,
    ENV_SOURCE_PORT,
    ENV_SOURCE_USER,
    ENV_TARGET_DSN,
    OPEN_ROOM_YEARS,
    PENDING_ORIGINAL_OCCURRED_AT,
)
from room_migrator.exceptions import ConfigError
from room_migrator.types import WatermarkMode
from room_migrator.utils.logging import log_with_context


@dataclass
class LegacyDatabaseConfig:
    """Connection parameters for the legacy store."""

    host: str = ""
    port: int = DEFAULT_LEGACY_PORT
    database: str = ""
    user: str = ""
    password: str = field(default="", repr=False)

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> LegacyDatabaseConfig:
        port_raw = environ.get(ENV_SOURCE_PORT, "")
        try:
            port = int(port_raw) if port_raw else DEFAULT_LEGACY_PORT
        except ValueError:
            raise ConfigError(
                f"{ENV_SOURCE_PORT} must be an integer, got {port_raw!r}"
            ) from None
        return cls(
            host=environ.get(ENV_SOURCE_HOST, ""),
            port=port,
            database=environ.get(ENV_SOURCE_DB, ""),
            user=environ.get(ENV_SOURCE_USER, ""),
            password=environ.get(ENV_SOURCE_PASSWORD, ""),
        )

    def missing_fields(self) -> list[str]:
        """Return the environment variables that still need a value."""
        missing = []
        if not self.host:
            missing.append(ENV_SOURCE_HOST)
        if not self.database:
            missing.append(ENV_SOURCE_DB)
        if not self.user:
            missing.append(ENV_SOURCE_USER)
        return missing

    def connection_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``psycopg.connect``."""
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.database,
            "user": self.user,
            "password": self.password,
        }

    def describe(self) -> str:
        """Human-readable location with the password left out."""
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


@dataclass
class MigrationConfig:
    """Typed configuration for the migration tool.

    All fields have defaults, so an empty or missing YAML file is valid.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    agent_label: str = DEFAULT_AGENT_LABEL
    open_room_years: int = OPEN_ROOM_YEARS
    pending_original_occurred_at: int = PENDING_ORIGINAL_OCCURRED_AT
    watermark_mode: WatermarkMode = WatermarkMode.STRICT
    show_progress: bool = True

    # Populated from the environment, never from YAML
    legacy: LegacyDatabaseConfig = field(default_factory=LegacyDatabaseConfig)
    target_dsn: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.watermark_mode, str) and not isinstance(
            self.watermark_mode, WatermarkMode
        ):
            try:
                self.watermark_mode = WatermarkMode(self.watermark_mode)
            except ValueError:
                valid = ", ".join(m.value for m in WatermarkMode)
                raise ValueError(
                    f"Invalid watermark_mode '{self.watermark_mode}'. "
                    f"Must be one of: {valid}"
                ) from None
        for name in ("batch_size", "open_room_years", "pending_original_occurred_at"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.open_room_years < 1:
            raise ValueError(
                f"open_room_years must be positive, got {self.open_room_years}"
            )
        if not self.agent_label:
            raise ValueError("agent_label must not be empty")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MigrationConfig:
        """Create a MigrationConfig from a raw config dictionary."""
        return cls(
            batch_size=data.get("batch_size", DEFAULT_BATCH_SIZE),
            agent_label=data.get("agent_label", DEFAULT_AGENT_LABEL),
            open_room_years=data.get("open_room_years", OPEN_ROOM_YEARS),
            pending_original_occurred_at=data.get(
                "pending_original_occurred_at", PENDING_ORIGINAL_OCCURRED_AT
            ),
            watermark_mode=data.get("watermark_mode", WatermarkMode.STRICT.value),
            show_progress=data.get("show_progress", True),
        )

    def apply_environment(self, environ: Mapping[str, str]) -> None:
        """Overlay store credentials from the environment."""
        self.legacy = LegacyDatabaseConfig.from_env(environ)
        self.target_dsn = environ.get(ENV_TARGET_DSN, "")

    def require_legacy(self) -> None:
        missing = self.legacy.missing_fields()
        if missing:
            raise ConfigError(
                "Legacy store credentials are incomplete; set "
                + ", ".join(missing)
            )

    def require_target(self) -> None:
        if not self.target_dsn:
            raise ConfigError(f"Target store DSN is missing; set {ENV_TARGET_DSN}")


def load_config(
    config_path: Path, environ: Mapping[str, str] | None = None
) -> MigrationConfig:
    """
    Load configuration from YAML file and the environment.

    A missing or unreadable file falls back to default settings with a
    warning. Invalid option values raise ``ConfigError``.

    Args:
        config_path: Path to the config YAML file
        environ: Environment to read credentials from (defaults to os.environ)

    Returns:
        MigrationConfig with defaults applied and credentials overlaid
    """
    raw: dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path) as f:
                loaded_config = yaml.safe_load(f)
                # Handle None result from empty file
                if loaded_config is not None:
                    raw = loaded_config
            log_with_context(logging.INFO, f"Loaded configuration from {config_path}")
        except (yaml.YAMLError, OSError) as e:
            log_with_context(
                logging.WARNING, f"Failed to load config file {config_path}: {e}"
            )
    else:
        log_with_context(
            logging.DEBUG,
            f"Config file {config_path} not found, using default settings",
        )

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    try:
        config = MigrationConfig.from_dict(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e
    config.apply_environment(os.environ if environ is None else environ)
    return config


def create_default_config(output_path: Path) -> bool:
    """
    Create a default configuration file with recommended settings.

    Will not overwrite an existing file. Credentials are not written; they
    are taken from the environment at run time.

    Args:
        output_path: Path where the default config should be saved

    Returns:
        True if the config file was created successfully, False otherwise
    """
    if output_path.exists():
        log_with_context(
            logging.WARNING,
            f"Config file {output_path} already exists, not overwriting",
        )
        return False

    default_config = {
        "batch_size": DEFAULT_BATCH_SIZE,
        "agent_label": DEFAULT_AGENT_LABEL,
        "open_room_years": OPEN_ROOM_YEARS,
        "pending_original_occurred_at": PENDING_ORIGINAL_OCCURRED_AT,
        "watermark_mode": WatermarkMode.STRICT.value,
        "show_progress": True,
    }

    try:
        with open(output_path, "w") as f:
            f.write(
                "# Credentials are read from SOURCE_HOST, SOURCE_PORT, SOURCE_DB,\n"
                "# SOURCE_USER, SOURCE_PASSWORD and DATABASE_URL.\n"
            )
            yaml.safe_dump(default_config, f, default_flow_style=False)
        log_with_context(logging.INFO, f"Created default config file at {output_path}")
        return True
    except OSError as e:
        log_with_context(logging.ERROR, f"Failed to create default config file: {e}")
        return False
