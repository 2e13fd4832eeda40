"""
Preference handling for the chat translator.

Provides the Pydantic preference schema and the persistent, hot-reloading
preference store that notifies listeners of changed values.
"""

from .schema import (
    ENABLED_KEY,
    TARGET_LANGUAGE_KEY,
    PreferenceChange,
    PreferenceFormat,
    Preferences,
)
from .manager import PreferenceStore

__all__ = [
    'Preferences',
    'PreferenceChange',
    'PreferenceFormat',
    'PreferenceStore',
    'TARGET_LANGUAGE_KEY',
    'ENABLED_KEY',
]
