"""Configuration management for the sequence notifier."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_app_config, load_config
from .models import (
    AppConfig,
    DeliveryBackend,
    DeliveryConfig,
    EmailConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MessageConfig,
    SeedConfig,
    SenderConfig,
    SourceConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "load_app_config",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "SenderConfig",
    "MessageConfig",
    "EmailConfig",
    "DeliveryConfig",
    "SourceConfig",
    "SeedConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "DeliveryBackend",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
