"""
Live chat translator.

Watches a continuously updated chat document, extracts the text of each new
message, translates it once per target language through an external
provider, and rewrites the message in place while keeping the original
recoverable.
"""

from .app import ChatTranslator
from .config import PreferenceStore, Preferences
from .document import HostDocument, SoupDocument
from .exceptions import (
    ApplyFailed,
    ConfigurationError,
    ContainerNotFound,
    ControlError,
    ExtractionFailed,
    ProviderError,
    TranslatorError,
)
from .pipeline import Outcome, TranslationPipeline
from .watcher import MutationWatcher

__version__ = "1.0.0"

__all__ = [
    'ChatTranslator',
    'PreferenceStore',
    'Preferences',
    'HostDocument',
    'SoupDocument',
    'TranslationPipeline',
    'Outcome',
    'MutationWatcher',
    'TranslatorError',
    'ConfigurationError',
    'ContainerNotFound',
    'ExtractionFailed',
    'ApplyFailed',
    'ProviderError',
    'ControlError',
]
