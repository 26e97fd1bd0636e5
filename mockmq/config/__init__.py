"""
Configuration package for the Mock MQ Manager.

This package provides configuration management with environment variable support,
validation, and deployment environment handling.
"""

from .settings import (
    Settings,
    MQConfig,
    StorageConfig,
    APIConfig,
    MonitoringConfig,
    Environment,
    LogLevel,
    DEFAULT_QUEUES,
    settings,
    get_settings,
    reload_settings
)

from .utils import (
    load_config_from_file,
    load_imposter_definitions,
    validate_configuration
)

__all__ = [
    # Settings classes
    "Settings",
    "MQConfig",
    "StorageConfig",
    "APIConfig",
    "MonitoringConfig",

    # Enums and constants
    "Environment",
    "LogLevel",
    "DEFAULT_QUEUES",

    # Settings instances and functions
    "settings",
    "get_settings",
    "reload_settings",

    # Utility functions
    "load_config_from_file",
    "load_imposter_definitions",
    "validate_configuration"
]
