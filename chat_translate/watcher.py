"""
Mutation watcher.

Only one watcher may hold a live subscription in a process. ``start`` tears
down whichever other watcher is active before subscribing, and ``stop`` is
safe to call any number of times.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Set

from bs4 import Tag

from .applier import TextApplier
from .cache import TranslationCache
from .classifier import MessageClassifier
from .document import HostDocument, MutationRecord, Subscription, iter_elements
from .exceptions import ContainerNotFound
from .pipeline import TranslationPipeline
from .settings import Settings
from .signatures import MESSAGE_SHAPE_SELECTOR
from .state import ProcessingState

logger = logging.getLogger(__name__)

_active_watcher: Optional["MutationWatcher"] = None


def active_watcher() -> Optional["MutationWatcher"]:
    return _active_watcher


class MutationWatcher:
    """Feeds new and existing chat messages to the translation pipeline."""

    def __init__(
        self,
        document: HostDocument,
        classifier: MessageClassifier,
        pipeline: TranslationPipeline,
        applier: TextApplier,
        cache: TranslationCache,
        settings: Settings,
        is_enabled: Callable[[], bool],
    ):
        self.document = document
        self.classifier = classifier
        self.pipeline = pipeline
        self.applier = applier
        self.cache = cache
        self.settings = settings
        self.is_enabled = is_enabled

        self.container: Optional[Tag] = None
        self._subscription: Optional[Subscription] = None
        self._active = False
        self._attempts = 0
        self._retry_handle: Optional[asyncio.TimerHandle] = None
        self._timers: Set[asyncio.TimerHandle] = set()

    @property
    def active(self) -> bool:
        return self._active

    @property
    def observing(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def start(self) -> None:
        global _active_watcher

        if self._active:
            logger.info("Observer already active")
            return

        if _active_watcher is not None and _active_watcher is not self:
            _active_watcher.stop()
        _active_watcher = self
        self._active = True
        self._attempts = 0

        logger.info("Starting observation...")
        # The page renders chat in stages; scan a few times early on
        for delay in self.settings.startup_scan_delays:
            self._later(delay, self._timed_scan)
        if self.settings.scan_interval > 0:
            self._later(self.settings.scan_interval, self._periodic_scan)

        self._acquire()

    def stop(self) -> None:
        global _active_watcher

        if self._subscription is not None:
            self._subscription.disconnect()
            self._subscription = None
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()

        if self._active:
            logger.info("Stopped observation")
        self._active = False
        self.container = None
        if _active_watcher is self:
            _active_watcher = None

    def _resolve_container(self) -> Tag:
        self._attempts += 1
        container = self.classifier.locate_container(self.document)
        if container is None:
            raise ContainerNotFound(attempts=self._attempts)
        return container

    def _acquire(self) -> None:
        if self._subscription is not None:
            return
        try:
            container = self._resolve_container()
        except ContainerNotFound as e:
            delay = self.settings.container_retry_delay
            logger.warning(f"{e}; retrying in {delay} seconds")
            self._retry_handle = asyncio.get_running_loop().call_later(delay, self._retry)
            return

        logger.info("Setting up mutation observer")
        self.container = container
        self._subscription = self.document.observe(container, self._on_mutations)

    def _retry(self) -> None:
        self._retry_handle = None
        if self._active and self._subscription is None and self.is_enabled():
            self._acquire()

    def _drop_lost_container(self) -> None:
        if self.container is None or self.document.is_attached(self.container):
            return
        logger.warning("Chat container was detached; reacquiring")
        if self._subscription is not None:
            self._subscription.disconnect()
            self._subscription = None
        self.container = None
        if self._active and self._retry_handle is None:
            self._acquire()

    def _on_mutations(self, records: List[MutationRecord]) -> None:
        if not self.is_enabled():
            return
        for record in records:
            for node in iter_elements(record.added_nodes):
                self.pipeline.submit(node)
                # A batch of lines inserted at once arrives as one node
                for child in node.select(MESSAGE_SHAPE_SELECTOR):
                    self.pipeline.submit(child)

    def _later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        """Schedule ``callback``; the handle is forgotten once it has fired."""
        handle: Optional[asyncio.TimerHandle] = None

        def fire() -> None:
            self._timers.discard(handle)
            callback()

        handle = asyncio.get_running_loop().call_later(delay, fire)
        self._timers.add(handle)
        return handle

    def _timed_scan(self) -> None:
        self.scan_all()

    def _periodic_scan(self) -> None:
        # Retries released nodes and notices a detached container
        if not self._active:
            return
        self.scan_all()
        if self._active:
            self._later(self.settings.scan_interval, self._periodic_scan)

    def scan_all(self) -> int:
        """Submit every current candidate. Returns the number submitted."""
        if not self.is_enabled():
            logger.info("Translation disabled")
            return 0

        self._drop_lost_container()
        root = self.container
        if root is None:
            root = self.classifier.locate_container(self.document) or self.document.root

        candidates = [
            node for node in self.classifier.find_candidates(root)
            if self.pipeline.states.state(node) is ProcessingState.UNTOUCHED
        ]
        logger.info(f"Scanning {len(candidates)} messages")
        for node in candidates:
            self.pipeline.submit(node)
        return len(candidates)

    def reset_and_rescan(self) -> None:
        """Forget every translation, restore originals, then scan again."""
        self.cache.clear()
        self.pipeline.invalidate()

        reverted = 0
        for node in list(self.pipeline.states.nodes_in(ProcessingState.DONE)):
            self.applier.revert(node)
            reverted += 1
        logger.info(f"Restored {reverted} translated messages")

        self._later(self.settings.rescan_delay, self._timed_scan)

    def on_visibility_change(self, hidden: bool) -> None:
        if hidden or not self.is_enabled() or self._active:
            return
        self._later(self.settings.visibility_restart_delay, self._restart_if_visible)

    def _restart_if_visible(self) -> None:
        # The page may have been hidden again during the delay
        if self.document.hidden or not self.is_enabled() or self._active:
            return
        self.start()
