"""
Configuration loading and validation for patchguard.

This module handles configuration file parsing, validation, and provides
sensible defaults for all configuration options. Command-line flags are
layered on top with apply_overrides().
"""

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from patchguard.validator.policy_runner import ExtensionFilter, PolicyOptions

CONFIG_NAMES = [".patchguard.yaml", ".patchguard.yml"]


class ConfigError(ValueError):
    """Invalid or unreadable configuration."""
    pass


class PolicyConfig(BaseModel):
    """Configuration for the validation policy."""

    min_context: int = Field(
        default=3,
        ge=0,
        description="Context lines required before and after each change.",
    )
    extensions: list[str] = Field(
        default=["py", "json"],
        description="File extensions to check. An empty list checks every file.",
    )
    ignore_trailing_whitespace: bool = Field(
        default=False,
        description="Ignore trailing whitespace when matching base lines.",
    )

    class Config:
        extra = "forbid"


class RunnerConfig(BaseModel):
    """Configuration for how a run is executed."""

    base: str = Field(
        default="HEAD",
        description="Base to check against: git:<rev>, dir:<path>, a directory or a revision.",
    )
    workers: int = Field(
        default=1,
        ge=1,
        description="Files validated in parallel.",
    )
    resolver_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for the base content of one file.",
    )
    strict: bool = Field(
        default=False,
        description="Fail the whole run when base content cannot be read.",
    )

    class Config:
        extra = "forbid"


class OutputConfig(BaseModel):
    """Configuration for output formatting."""

    colorize: bool = Field(
        default=True,
        description="Use colors in terminal output.",
    )
    verbose: bool = Field(
        default=False,
        description="Enable verbose output.",
    )

    class Config:
        extra = "forbid"


class Config(BaseModel):
    """Root configuration model for patchguard."""

    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    class Config:
        """Pydantic model configuration."""

        extra = "forbid"

    def policy_options(self) -> PolicyOptions:
        """Options handed to the policy runner."""
        return PolicyOptions(
            min_context=self.policy.min_context,
            ignore_trailing_whitespace=self.policy.ignore_trailing_whitespace,
            strict=self.runner.strict,
            workers=self.runner.workers,
            resolver_timeout=self.runner.resolver_timeout,
        )

    def path_filter(self) -> ExtensionFilter:
        """Path filter built from the configured extensions."""
        return ExtensionFilter(self.policy.extensions)


def parse_extensions(value: str) -> list[str]:
    """Split a comma-separated extension list such as ``py,.json``."""
    return [part.strip().lstrip(".") for part in value.split(",") if part.strip()]


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the configuration file. If None, returns defaults.

    Returns:
        Config object with loaded or default values.

    Raises:
        ConfigError: If the file is missing or its content is invalid.
    """
    if config_path is None:
        return Config()

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read configuration: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a mapping: {config_path}")

    try:
        return Config(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e


def find_config_file(start_path: Path) -> Optional[Path]:
    """
    Search for a configuration file starting from the given path.

    Searches for `.patchguard.yaml` or `.patchguard.yml` in the start path
    and parent directories.

    Args:
        start_path: Directory to start searching from.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = start_path.resolve()
    while True:
        for name in CONFIG_NAMES:
            config_path = current / name
            if config_path.exists():
                return config_path
        if current == current.parent:
            return None
        current = current.parent


def apply_overrides(config: Config, **overrides: Any) -> Config:
    """
    Layer command-line values over a loaded configuration.

    Keyword names are ``<section>_<field>`` (for example
    ``policy_min_context``). None values mean "not given" and are ignored.

    Raises:
        ConfigError: If an override names an unknown field or is invalid.
    """
    sections: dict[str, dict[str, Any]] = {}
    for key, value in overrides.items():
        if value is None:
            continue
        section, _, field_name = key.partition("_")
        if section not in Config.model_fields or not field_name:
            raise ConfigError(f"Unknown configuration override: {key}")
        sections.setdefault(section, {})[field_name] = value

    if not sections:
        return config

    data = config.model_dump()
    for section, values in sections.items():
        data[section].update(values)
    try:
        return Config(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid option: {e}") from e
