"""
Per-node translation state machine.

    untouched --admit--> in_flight --apply--> done
                             |
                             +--failure/unchanged/stale--> untouched

``process`` runs its guard and the in-flight write without any ``await`` in
between, so overlapping calls for the same node can never both get past the
guard. Two different nodes with the same text may still both reach the
provider if neither call has finished yet; the cache only deduplicates
completed translations.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Set

from bs4 import Tag

from .applier import TextApplier
from .cache import TranslationCache
from .classifier import MessageClassifier, NodeKind
from .config import PreferenceStore
from .exceptions import ApplyFailed, ExtractionFailed, ProviderError, is_recoverable_error
from .extractor import TextExtractor, is_command
from .state import NodeStateTable, ProcessingState
from .translators.base import BaseTranslator

logger = logging.getLogger(__name__)


class Outcome(Enum):
    SKIPPED = "skipped"
    TRANSLATED = "translated"
    CACHED = "cached"
    UNCHANGED = "unchanged"
    STALE = "stale"
    FAILED = "failed"


class TranslationPipeline:
    """Takes candidate nodes from detection through to an applied translation."""

    def __init__(
        self,
        preferences: PreferenceStore,
        translator: BaseTranslator,
        cache: TranslationCache,
        states: NodeStateTable,
        classifier: MessageClassifier,
        extractor: TextExtractor,
        applier: TextApplier,
    ):
        self.preferences = preferences
        self.translator = translator
        self.cache = cache
        self.states = states
        self.classifier = classifier
        self.extractor = extractor
        self.applier = applier
        self.provider_calls = 0
        self._generation = 0
        self._tasks: Set[asyncio.Task] = set()

    def invalidate(self) -> None:
        """Make results of provider calls still in flight unusable."""
        self._generation += 1

    def _overlaps_busy_node(self, node: Tag) -> bool:
        for parent in node.parents:
            if not isinstance(parent, Tag):
                continue
            state = self.states.state(parent)
            if state is ProcessingState.IN_FLIGHT:
                return True
            # A translated wrapper only owns the text it rewrote
            if state is ProcessingState.DONE and self.applier.owns(parent, node):
                return True
        return any(self.states.is_busy(child) for child in node.find_all(True))

    def _admit(self, node: Tag) -> str:
        """Check the guards and mark the node in-flight. Must not suspend."""
        if not self.preferences.get().enabled:
            raise _Skip("translation disabled")
        if self.states.state(node) is not ProcessingState.UNTOUCHED:
            raise _Skip("already handled")
        if self.classifier.classify(node) is not NodeKind.MESSAGE:
            raise _Skip("not a message")

        text = self.extractor.extract(node)
        if not text:
            raise ExtractionFailed("No message text found", node_name=node.name)
        if is_command(text):
            raise _Skip("command")
        if self._overlaps_busy_node(node):
            raise _Skip("overlaps a message being handled")

        self.states.try_begin(node)
        return text

    async def process(self, node: Tag) -> Outcome:
        try:
            text = self._admit(node)
        except _Skip as skip:
            logger.debug(f"Skipping <{getattr(node, 'name', None)}>: {skip}")
            return Outcome.SKIPPED
        except ExtractionFailed as e:
            logger.debug(str(e))
            return Outcome.SKIPPED

        language = self.preferences.get().target_language
        translated = self.cache.get(text, language)
        outcome = Outcome.CACHED

        if translated is None:
            generation = self._generation
            self.provider_calls += 1
            try:
                translated = await self.translator.translate(text, language)
            except ProviderError as e:
                logger.warning(f"Translation error: {e}")
                self.states.release(node)
                return Outcome.FAILED
            except Exception as e:
                self.states.release(node)
                if not is_recoverable_error(e):
                    raise
                logger.warning(f"Translation error: {e}")
                return Outcome.FAILED

            if generation != self._generation:
                logger.debug(f"Discarding stale translation of {text[:50]!r}")
                self.states.release(node)
                return Outcome.STALE

            if not translated or translated == text:
                logger.debug(f"Already in {language}: {text[:50]!r}")
                self.states.release(node)
                return Outcome.UNCHANGED

            self.cache.put(text, language, translated)
            outcome = Outcome.TRANSLATED

        try:
            self.applier.apply(node, text, translated)
        except ApplyFailed as e:
            logger.warning(str(e))
            return Outcome.FAILED
        return outcome

    def submit(self, node: Tag) -> asyncio.Task:
        """Schedule ``process(node)`` as its own task."""
        task = asyncio.ensure_future(self.process(node))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.error(f"Translation task failed: {task.exception()}")

    async def drain(self) -> None:
        """Wait until every submitted task, including ones submitted meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class _Skip(Exception):
    pass
