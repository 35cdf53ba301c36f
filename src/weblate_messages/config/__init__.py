"""
Configuration module for weblate-messages.

Exports the main components for convenient imports.
"""

from .loader import load_config
from .schema import (
    AppConfig,
    BundleConfig,
    ConfigurationError,
    LoggingConfig,
    WeblateConfig,
)

__all__ = [
    "load_config",
    "AppConfig",
    "BundleConfig",
    "ConfigurationError",
    "LoggingConfig",
    "WeblateConfig",
]
