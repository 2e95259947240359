"""Configuration defaults for the detection trigger service."""

from .defaults import (
    DEFAULT_SETTINGS,
    DEFAULT_TRIGGER,
    SYSTEM_CONSTANTS,
    DEFAULT_PATHS
)

__all__ = [
    'DEFAULT_SETTINGS',
    'DEFAULT_TRIGGER',
    'SYSTEM_CONSTANTS',
    'DEFAULT_PATHS'
]
