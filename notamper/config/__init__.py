"""Configuration for everything around the hashing engine.

The engine itself takes no configuration beyond a per-call HashingPolicy.
Client settings are passed explicitly; per-form values live in a small JSON
properties store.
"""

from .errors import ConfigurationError
from .properties import (
    ACCESS_TOKEN_KEY,
    BATCH_CONFIG_KEY,
    LAST_PROCESSED_KEY,
    PropertiesStore,
)
from .schedule import FREQUENCIES, BatchSchedule
from .settings import (
    ADDON_NAME,
    ADDON_VERSION,
    DEFAULT_API_ENDPOINT,
    ClientSettings,
    validate_access_token,
)

__all__ = [
    "ACCESS_TOKEN_KEY",
    "ADDON_NAME",
    "ADDON_VERSION",
    "BATCH_CONFIG_KEY",
    "BatchSchedule",
    "ClientSettings",
    "ConfigurationError",
    "DEFAULT_API_ENDPOINT",
    "FREQUENCIES",
    "LAST_PROCESSED_KEY",
    "PropertiesStore",
    "validate_access_token",
]
