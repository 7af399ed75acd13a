"""
Openjourney Core Module

Contains core systems including configuration, settings, constants, exceptions, and logging.
"""

from .config import OpenjourneyConfig, get_config, load_config, set_config
from .constants import *
from .exceptions import *
from .logging_config import setup_logging, get_logger
from .settings import (
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    ProviderSettings,
    SettingsContext,
)

__all__ = [
    'OpenjourneyConfig',
    'get_config',
    'load_config',
    'set_config',
    'setup_logging',
    'get_logger',
    # Settings
    'JsonFileStore',
    'KeyValueStore',
    'MemoryStore',
    'ProviderSettings',
    'SettingsContext',
]
