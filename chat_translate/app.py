"""
Chat translator orchestration.

``ChatTranslator`` wires the preference store, cache, classifier, extractor,
pipeline, applier and watcher together around one host document, and reacts
to preference changes, control commands and visibility changes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from .applier import TextApplier
from .cache import TranslationCache
from .classifier import MessageClassifier
from .config import ENABLED_KEY, TARGET_LANGUAGE_KEY, PreferenceChange, PreferenceStore
from .document import HostDocument
from .extractor import TextExtractor
from .pipeline import TranslationPipeline
from .settings import Settings
from .state import NodeStateTable
from .translators.base import BaseTranslator
from .watcher import MutationWatcher

logger = logging.getLogger(__name__)


class ChatTranslator:
    """Keeps a live chat document translated into the preferred language."""

    def __init__(
        self,
        document: HostDocument,
        preferences: PreferenceStore,
        translator: BaseTranslator,
        settings: Optional[Settings] = None,
    ):
        self.document = document
        self.preferences = preferences
        self.translator = translator
        self.settings = settings or Settings()

        self.cache = TranslationCache()
        self.states = NodeStateTable()
        self.classifier = MessageClassifier()
        self.extractor = TextExtractor()
        self.applier = TextApplier(document, self.states)
        self.pipeline = TranslationPipeline(
            preferences,
            translator,
            self.cache,
            self.states,
            self.classifier,
            self.extractor,
            self.applier,
        )
        self.watcher = MutationWatcher(
            document,
            self.classifier,
            self.pipeline,
            self.applier,
            self.cache,
            self.settings,
            is_enabled=lambda: self.preferences.get().enabled,
        )
        self._start_handle: Optional[asyncio.TimerHandle] = None
        self._started = False

    async def start(self) -> None:
        """Begin watching once the page has had a moment to render."""
        if self._started:
            return
        self._started = True
        logger.info("Chat translator loaded")

        self.preferences.on_change(self._on_preferences_changed)
        self.document.add_visibility_listener(self.watcher.on_visibility_change)
        if self.settings.hot_reload:
            self.preferences.start_watching(asyncio.get_running_loop())

        if self.preferences.get().enabled:
            loop = asyncio.get_running_loop()
            self._start_handle = loop.call_later(self.settings.start_delay, self._deferred_start)

    def _deferred_start(self) -> None:
        self._start_handle = None
        if self.preferences.get().enabled:
            self.watcher.start()

    async def close(self) -> None:
        if self._start_handle is not None:
            self._start_handle.cancel()
            self._start_handle = None
        self.watcher.stop()
        self.preferences.remove_listener(self._on_preferences_changed)
        self.preferences.stop_watching()
        await self.pipeline.drain()
        await self.translator.close()
        self._started = False

    def _on_preferences_changed(self, changes: Dict[str, PreferenceChange]) -> None:
        if TARGET_LANGUAGE_KEY in changes:
            logger.info(f"Target language changed to {changes[TARGET_LANGUAGE_KEY].new_value}")
            self.watcher.reset_and_rescan()

        if ENABLED_KEY in changes:
            if changes[ENABLED_KEY].new_value:
                self.watcher.start()
            else:
                self.watcher.stop()

    async def reload_settings(self) -> Dict[str, Any]:
        """Handle the ``reloadSettings`` control command."""
        self.preferences.reload()
        self.cache.clear()
        if self.preferences.get().enabled:
            self.watcher.start()
            self.watcher.reset_and_rescan()
        else:
            self.watcher.stop()
        return {"success": True}

    async def translate_once(self) -> int:
        """Scan the document a single time and wait for every translation."""
        submitted = self.watcher.scan_all()
        await self.pipeline.drain()
        return submitted
