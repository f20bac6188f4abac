"""Configuration loader for the sequence notifier."""

import logging
from pathlib import Path
from typing import Optional, Tuple

import yaml
from pydantic import ValidationError

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .models import AppConfig, DeliveryBackend
from .validators import check_for_warnings, emit_warnings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_CANDIDATES = (
    Path("config.yaml"),
    Path("config") / "config.yaml",
)


def load_config(
    config_path: Optional[Path] = None,
    require_smtp: Optional[bool] = None,
) -> Tuple[AppConfig, EnvironmentConfig]:
    """Load and validate configuration from YAML and environment variables.

    Config file lookup:
    1. Use config_path if given (must exist)
    2. Try config.yaml, then config/config.yaml
    3. Fall back to built-in defaults

    Args:
        config_path: Optional path to configuration file
        require_smtp: Whether SMTP variables are mandatory. Defaults to
            True when the configured delivery backend is smtp.

    Returns:
        Tuple of (AppConfig, EnvironmentConfig)

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config = load_app_config(config_path)

    if require_smtp is None:
        require_smtp = app_config.delivery.backend == DeliveryBackend.SMTP.value

    try:
        env_config = load_environment_config(require_smtp=require_smtp)
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load environment configuration: {e}",
            suggestions=["Ensure all required environment variables are set"],
        )

    return app_config, env_config


def load_app_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and validate only the YAML part of the configuration."""
    config_file = _find_config_file(config_path)
    if config_file is None:
        logger.debug("No configuration file found, using defaults")
        return AppConfig()

    config_dict = _read_yaml(config_file)

    if config_dict is None:
        return AppConfig()
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            f"Configuration file {config_file} must contain a mapping at the top level",
            suggestions=["Review config.example.yaml for correct format"],
        )

    warnings = check_for_warnings(config_dict)
    if warnings:
        emit_warnings(warnings)

    try:
        return AppConfig.model_validate(config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            "Configuration validation failed",
            errors=[_describe_error(error) for error in e.errors()],
            suggestions=[
                "Review config.example.yaml for correct format",
                "Verify field types match the expected schema",
            ],
        )


def _read_yaml(config_file: Path):
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML configuration: {e}",
            suggestions=[
                "Check YAML syntax in your config file",
                "Ensure proper indentation (use spaces, not tabs)",
            ],
        )
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read configuration file: {e}",
            suggestions=[f"Ensure {config_file} is readable", "Check file permissions"],
        )


def _describe_error(error) -> str:
    field_path = " -> ".join(str(loc) for loc in error["loc"])
    error_type = error["type"]

    if error_type == "missing":
        return f"Missing required field: {field_path}"
    if error_type == "extra_forbidden":
        return f"Unknown field: {field_path}"
    if error_type in ("string_type", "int_type", "bool_type", "float_type"):
        expected_type = error_type.replace("_type", "")
        return f"Invalid type for '{field_path}': expected {expected_type}, got {error.get('input')!r}"
    if "enum" in error_type:
        return f"Invalid value for '{field_path}': {error['msg']}"
    return f"{field_path}: {error['msg']}"


def _find_config_file(config_path: Optional[Path] = None) -> Optional[Path]:
    if config_path:
        if not config_path.exists():
            raise ConfigurationError(
                f"Specified configuration file not found: {config_path}",
                suggestions=[
                    f"Ensure {config_path} exists",
                    "Omit --config to run with built-in defaults",
                ],
            )
        return config_path

    for candidate in DEFAULT_CONFIG_CANDIDATES:
        if candidate.exists():
            return candidate
    return None
