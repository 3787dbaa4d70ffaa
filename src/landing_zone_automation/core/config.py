"""Configuration management for landing zone automation.

This module handles YAML configuration loading, validation, and
environment variable override support.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..control_tower.models import DesiredConfiguration
from .credentials import get_global_region

DEFAULT_SDK_MAX_ATTEMPTS = 800

ENVIRONMENT_OVERRIDES = {
    "AWS_REGION": "aws.home_region",
    "AWS_PARTITION": "aws.partition",
    "ACCELERATOR_SDK_MAX_ATTEMPTS": "sdk.max_attempts",
}


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


class Configuration:
    """Configuration management with YAML loading and validation."""

    def __init__(self, config_path: Optional[str] = None) -> None:
        """Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file.
                        If None, auto-detects config.yaml in current directory.

        Raises:
            ConfigurationError: When configuration file is invalid
        """
        self._config: Dict[str, Any] = {}
        self._config_path = self._resolve_config_path(config_path)
        self._load_configuration()
        self._apply_environment_overrides()
        self._validate_configuration()

    def _resolve_config_path(self, config_path: Optional[str]) -> Path:
        """Resolve configuration file path.

        Args:
            config_path: Optional path to configuration file

        Returns:
            Resolved Path object to configuration file

        Raises:
            ConfigurationError: When configuration file not found
        """
        if config_path:
            path = Path(config_path)
        else:
            path = Path("config.yaml")
            if not path.exists():
                path = Path("config/landing-zone.yaml")

        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}. "
                "Please create a configuration file or specify a valid path."
            )

        return path

    def _load_configuration(self) -> None:
        """Load configuration from YAML file.

        Raises:
            ConfigurationError: When YAML file is invalid
        """
        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file {self._config_path}: {e}"
            )
        except IOError as e:
            raise ConfigurationError(
                f"Unable to read configuration file {self._config_path}: {e}"
            )

        if not isinstance(self._config, dict):
            raise ConfigurationError(
                f"Configuration file {self._config_path} must contain a mapping"
            )

    def _apply_environment_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        for variable, key_path in ENVIRONMENT_OVERRIDES.items():
            if variable in os.environ:
                self._set_nested_value(key_path, os.environ[variable])

    def _validate_configuration(self) -> None:
        """Validate configuration has required sections.

        Field-level validation of the landing zone section happens in
        ``get_landing_zone_configuration``.

        Raises:
            ConfigurationError: When required fields are missing
        """
        for section in ("aws", "landing_zone"):
            if not isinstance(self._config.get(section), dict):
                raise ConfigurationError(f"Required configuration section '{section}' is missing")

        home_region = self._config["aws"].get("home_region")
        if not isinstance(home_region, str) or not home_region:
            raise ConfigurationError("Field 'aws.home_region' must be a non-empty string")

        max_attempts = self.get("sdk.max_attempts")
        if max_attempts is not None:
            try:
                max_attempts = int(max_attempts)
            except (TypeError, ValueError):
                raise ConfigurationError("Field 'sdk.max_attempts' must be an integer")
            if max_attempts < 1:
                raise ConfigurationError("Field 'sdk.max_attempts' must be at least 1")
            self._set_nested_value("sdk.max_attempts", max_attempts)

    def _set_nested_value(self, key_path: str, value: Any) -> None:
        """Set nested configuration value using dot notation.

        Args:
            key_path: Dot-separated key path (e.g., 'aws.home_region')
            value: Value to set
        """
        keys = key_path.split(".")
        current = self._config

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key_path: Dot-separated key path (e.g., 'aws.home_region')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        current = self._config

        try:
            for key in keys:
                current = current[key]
            return current
        except (KeyError, TypeError):
            return default

    def get_home_region(self) -> str:
        return self.get("aws.home_region")

    def get_partition(self) -> str:
        return self.get("aws.partition", "aws")

    def get_global_region(self) -> str:
        """Get the global region, derived from the partition when not set.

        Returns:
            AWS region name
        """
        return self.get("aws.global_region") or get_global_region(self.get_partition())

    def get_max_attempts(self) -> int:
        """Get the throttling retry ceiling.

        Returns:
            Configured attempt count, or the default of 800
        """
        return self.get("sdk.max_attempts") or DEFAULT_SDK_MAX_ATTEMPTS

    def get_landing_zone_configuration(self) -> DesiredConfiguration:
        """Get the validated landing zone configuration.

        Returns:
            DesiredConfiguration

        Raises:
            InvalidInputError: When a landing zone field is missing or mis-typed
        """
        return DesiredConfiguration.from_dict(self._config["landing_zone"])

    def to_dict(self) -> Dict[str, Any]:
        """Get complete configuration as dictionary.

        Returns:
            Complete configuration dictionary
        """
        return self._config.copy()
