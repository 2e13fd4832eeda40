"""
Rewrites a message node with its translation.

The applier finds the sub-node that actually rendered the original text,
records the original on it as a ``data-original-text`` provenance marker,
swaps the text, and appends a small globe indicator whose tooltip shows the
original. All changes go through the host document so that observers see
them like any other page mutation.
"""

from __future__ import annotations

import logging
from typing import Optional

from bs4 import NavigableString, Tag
from bs4.element import Comment

from .document import HostDocument
from .exceptions import ApplyFailed
from .matchers import MatcherChain
from .signatures import (
    INDICATOR_CLASS,
    INDICATOR_MARK,
    INDICATOR_SELECTOR,
    INDICATOR_STYLE,
    MESSAGE_TEXT_SELECTORS,
    MIN_MESSAGE_LENGTH,
    PROVENANCE_ATTRIBUTE,
    PROVENANCE_SELECTOR,
)
from .state import NodeStateTable

logger = logging.getLogger(__name__)


class TextApplier:
    """Applies and reverts translations on live message nodes."""

    def __init__(self, document: HostDocument, states: NodeStateTable):
        self.document = document
        self.states = states
        self.text_chain = MatcherChain.from_selectors(MESSAGE_TEXT_SELECTORS)

    def find_text_element(self, node: Tag, original_text: str) -> Optional[Tag]:
        """Locate the most specific element that rendered ``original_text``."""
        for matcher in self.text_chain.matchers:
            found = matcher.find(node)
            if found is not None and len(found.get_text().strip()) >= MIN_MESSAGE_LENGTH:
                return found

        # Walk the text leaves for the one holding the message
        for string in node.find_all(string=True):
            if isinstance(string, Comment) or not isinstance(string, NavigableString):
                continue
            leaf_text = string.strip()
            if leaf_text == original_text or (
                original_text in leaf_text and len(leaf_text) < len(original_text) * 2
            ):
                return string.parent

        if original_text in node.get_text():
            for child in node.find_all(True, recursive=False):
                if original_text in child.get_text():
                    return child
            return node

        return None

    def apply(self, node: Tag, original_text: str, translated_text: str) -> Tag:
        """
        Replace ``original_text`` with ``translated_text`` inside ``node``.

        Returns:
            The element whose text was rewritten

        Raises:
            ApplyFailed: If no element rendering the original can be found.
                The node is released back to untouched first.
        """
        text_element = self.find_text_element(node, original_text)
        if text_element is None:
            self.states.release(node)
            raise ApplyFailed(node_name=node.name)

        if not text_element.has_attr(PROVENANCE_ATTRIBUTE):
            self.document.set_attribute(text_element, PROVENANCE_ATTRIBUTE, original_text)

        current_text = text_element.get_text()
        if original_text in current_text:
            self.document.set_text(text_element, current_text.replace(original_text, translated_text, 1))
        else:
            # Lossy: overwrites everything the element rendered
            self.document.set_text(text_element, translated_text)

        if text_element.select_one(INDICATOR_SELECTOR) is None and node.select_one(INDICATOR_SELECTOR) is None:
            indicator = self.document.create_element(
                "span",
                {
                    "class": [INDICATOR_CLASS],
                    "title": f"Translated from: {original_text}",
                    "style": INDICATOR_STYLE,
                },
                text=INDICATOR_MARK,
            )
            self.document.append_child(text_element, indicator)

        self.states.mark_done(node, original_text)
        logger.info(f"Translated: {original_text[:50]} -> {translated_text[:50]}")
        return text_element

    def owns(self, node: Tag, other: Tag) -> bool:
        """True if ``other`` is, or sits inside, an element rewritten for ``node``."""
        if node.has_attr(PROVENANCE_ATTRIBUTE):
            owned = [node]
        else:
            owned = node.select(PROVENANCE_SELECTOR) + node.select(INDICATOR_SELECTOR)
        return any(other is element or any(p is element for p in other.parents) for element in owned)

    def revert(self, node: Tag) -> bool:
        """
        Undo a translation: restore the recorded original, drop the
        indicator, and make the node eligible for the pipeline again.

        The provenance marker stays in place.
        """
        for indicator in node.select(INDICATOR_SELECTOR):
            self.document.remove(indicator)

        if node.has_attr(PROVENANCE_ATTRIBUTE):
            marked = node
        else:
            marked = node.select_one(PROVENANCE_SELECTOR)

        restored = False
        if marked is not None:
            self.document.set_text(marked, marked[PROVENANCE_ATTRIBUTE])
            restored = True

        self.states.reset(node)
        return restored
