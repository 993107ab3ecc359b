# src/goalcore/config/goals_config.py
"""
GoalCore configuration models.

This module defines Pydantic models for every configuration section.
These models are used for:
1. Type-safe configuration loading
2. Validation with sensible defaults
3. Runtime construction of storage backends and goal defaults

The configuration hierarchy:
    GoalCoreConfig (root)
    ├── StorageConfig       - Persistence backend selection
    ├── GoalDefaultsConfig  - Default scaling parameters for new goals
    └── logging             - Passed through to goalcore.logging_config

Usage:
    >>> from goalcore.config import GoalCoreConfig
    >>> config = GoalCoreConfig()  # All defaults
    >>> config.storage.type
    'memory'

    >>> config = load_config(config_dict={"storage": {"type": "sqlite"}})
    >>> config.storage.path
    '~/.local/share/goalcore/goals.db'
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..exceptions import ConfigError
from ..models import GoalDirection

# =============================================================================
# STORAGE CONFIGURATION
# =============================================================================


class StorageConfig(BaseModel):
    """
    Configuration for the goal persistence backend.

    Examples:
        >>> StorageConfig().type
        'memory'
        >>> StorageConfig(type="json", path="/tmp/goals.json").path
        '/tmp/goals.json'
    """

    type: Literal["memory", "json", "sqlite"] = Field(
        default="memory",
        description="Backend type: in-process memory, a JSON file, or SQLite",
    )
    path: str | None = Field(
        default=None,
        description=(
            "File path for the json/sqlite backends. "
            "Tilde and environment variable expansion is applied."
        ),
    )
    table_name: str = Field(
        default="goals",
        pattern=r"^[A-Za-z_][A-Za-z0-9_]*$",
        description="Table name used by the sqlite backend",
    )

    @field_validator("path")
    @classmethod
    def expand_path(cls, v: str | None) -> str | None:
        """Expand ~ and environment variables in path."""
        if v is None:
            return None
        return os.path.expanduser(os.path.expandvars(v))

    @model_validator(mode="after")
    def default_path(self) -> StorageConfig:
        if self.path is None and self.type == "json":
            self.path = os.path.expanduser("~/.local/share/goalcore/goals.json")
        elif self.path is None and self.type == "sqlite":
            self.path = os.path.expanduser("~/.local/share/goalcore/goals.db")
        return self


# =============================================================================
# GOAL DEFAULTS
# =============================================================================


class GoalDefaultsConfig(BaseModel):
    """
    Default scaling parameters applied when a create request omits them.

    Examples:
        >>> defaults = GoalDefaultsConfig()
        >>> defaults.scale_percent
        5.0
        >>> defaults.max_target
        100.0
    """

    goal_direction: GoalDirection = Field(default=GoalDirection.INCREASE)
    scale_percent: float = Field(default=5.0, ge=0.1, le=100)
    scale_up_enabled: bool = Field(default=True)
    scale_down_enabled: bool = Field(default=True)
    round_up: bool = Field(default=True)
    min_target: float = Field(default=1.0, ge=0)
    max_target: float = Field(default=100.0, ge=1)

    @model_validator(mode="after")
    def check_bounds(self) -> GoalDefaultsConfig:
        if self.min_target > self.max_target:
            raise ValueError("defaults.min_target must not exceed defaults.max_target")
        return self


# =============================================================================
# ROOT CONFIGURATION
# =============================================================================


class GoalCoreConfig(BaseModel):
    """
    Root configuration for the GoalCore library.

    Usage:
        >>> config = GoalCoreConfig()
        >>> config = GoalCoreConfig(**toml_dict["goalcore"])
        >>> config = GoalCoreConfig(
        ...     storage=StorageConfig(type="sqlite", path="/var/lib/goals.db"),
        ...     defaults=GoalDefaultsConfig(scale_percent=10.0),
        ... )
    """

    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Goal persistence backend",
    )
    defaults: GoalDefaultsConfig = Field(
        default_factory=GoalDefaultsConfig,
        description="Default scaling parameters for new goals",
    )
    logging: dict[str, Any] = Field(
        default_factory=dict,
        description="Overrides for goalcore.logging_config.DEFAULT_LOGGING_CONFIG",
    )


# =============================================================================
# HELPER: LOAD FROM TOML DICT
# =============================================================================


def load_config(
    config_dict: dict[str, Any] | None = None,
    config_path: str | Path | None = None,
) -> GoalCoreConfig:
    """
    Load GoalCore configuration from a dictionary or TOML file.

    Args:
        config_dict: Pre-parsed configuration dictionary. If it has a
            ``"goalcore"`` key, that section is used.
        config_path: Path to a TOML file. If provided, reads and parses
            it, then uses its ``[goalcore]`` table (or the whole document
            when there is none). ``config_dict`` values are applied on top.

    Returns:
        Validated GoalCoreConfig with defaults for unspecified settings.

    Raises:
        ConfigError: If the file is missing, unparsable, or any value
            fails validation.

    Examples:
        >>> load_config().storage.type
        'memory'
        >>> load_config(config_dict={"goalcore": {"defaults": {"scale_percent": 10}}}).defaults.scale_percent
        10.0
    """
    data: dict[str, Any] = {}

    if config_path is not None:
        import tomllib

        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}")
        data = raw.get("goalcore", raw)

    if config_dict is not None:
        overrides = config_dict.get("goalcore", config_dict)
        data = {**data, **overrides}

    try:
        return GoalCoreConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid GoalCore configuration: {e}")
