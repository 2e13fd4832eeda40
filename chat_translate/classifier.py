from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from bs4 import Tag
from bs4.element import PageElement

from .document import HostDocument
from .matchers import DensityMatcher, MatcherChain, SelectorMatcher
from .signatures import (
    CHAT_ANCESTOR_SELECTOR,
    CONTAINER_ATTRIBUTE_SELECTORS,
    CONTAINER_CLASS_SELECTORS,
    DECORATION_SELECTORS,
    MAX_MESSAGE_LENGTH,
    MESSAGE_ATTRIBUTE_MARKERS,
    MESSAGE_CLASS_MARKERS,
    MESSAGE_FALLBACK_SELECTOR,
    MESSAGE_SELECTORS,
    MESSAGE_SHAPE_SELECTOR,
    MIN_MESSAGE_LENGTH,
)

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    MESSAGE = "message"
    CONTAINER = "container"
    IRRELEVANT = "irrelevant"


def class_string(node: Tag) -> str:
    classes = node.get("class") or []
    if isinstance(classes, str):
        return classes
    return " ".join(classes)


def within_bounds(text: str) -> bool:
    return MIN_MESSAGE_LENGTH <= len(text) <= MAX_MESSAGE_LENGTH


class MessageClassifier:
    """Decides which nodes are single chat messages and finds the chat container."""

    def __init__(self):
        self.container_chain = MatcherChain(
            [SelectorMatcher(s) for s in CONTAINER_ATTRIBUTE_SELECTORS]
            + [SelectorMatcher(s) for s in CONTAINER_CLASS_SELECTORS]
            + [DensityMatcher()]
        )
        self.message_chain = MatcherChain.from_selectors(MESSAGE_SELECTORS)
        self.decoration_selector = ", ".join(DECORATION_SELECTORS)

    def locate_container(self, document: HostDocument) -> Optional[Tag]:
        """Return the element holding the message stream, or None."""
        match = self.container_chain.first(document.root)
        if match is None:
            return None
        logger.info(f"Found chat container: {match.matcher.name}")
        return match.node

    def is_decoration(self, node: Tag) -> bool:
        return node.css.match(self.decoration_selector)

    def is_message_shaped(self, node: Tag) -> bool:
        target = node.get("data-a-target") or ""
        if any(marker in target for marker in MESSAGE_ATTRIBUTE_MARKERS):
            return True
        classes = class_string(node)
        if any(marker in classes for marker in MESSAGE_CLASS_MARKERS):
            return True
        if node.select_one(MESSAGE_SHAPE_SELECTOR) is not None:
            return True
        return node.css.closest(CHAT_ANCESTOR_SELECTOR) is not None

    def classify(self, node: Optional[PageElement]) -> NodeKind:
        if not isinstance(node, Tag):
            return NodeKind.IRRELEVANT

        if not within_bounds(node.get_text()):
            return NodeKind.IRRELEVANT

        if self.is_decoration(node) or not self.is_message_shaped(node):
            return NodeKind.IRRELEVANT

        # A node wrapping several messages must not be handled as one
        if len(node.select(MESSAGE_SHAPE_SELECTOR)) > 1:
            return NodeKind.CONTAINER

        return NodeKind.MESSAGE

    def find_candidates(self, root: Tag) -> List[Tag]:
        """Every node under ``root`` that may be a message, in priority order."""
        matches = self.message_chain.union(root)
        if matches:
            used = sorted({m.matcher.name for m in matches})
            logger.debug(f"Found {len(matches)} candidates using: {used}")
            return [m.node for m in matches]

        candidates = []
        for element in root.select(MESSAGE_FALLBACK_SELECTOR):
            text = element.get_text().strip()
            if MIN_MESSAGE_LENGTH <= len(text) < MAX_MESSAGE_LENGTH and element.select_one('[data-a-target*="message"]') is None:
                candidates.append(element)
        logger.debug(f"Found {len(candidates)} candidates via structural fallback")
        return candidates
