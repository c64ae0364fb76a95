"""Configuration infrastructure module."""

from assetdesk.infrastructure.config.file_loader import (
    ConfigurationError,
    ConfigurationFileLoader,
)
from assetdesk.infrastructure.config.seed import apply_seed, seed_from_file
from assetdesk.infrastructure.config.settings import AppSettings

__all__ = [
    "AppSettings",
    "ConfigurationError",
    "ConfigurationFileLoader",
    "apply_seed",
    "seed_from_file",
]
