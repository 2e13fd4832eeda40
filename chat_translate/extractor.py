from __future__ import annotations

import copy
from typing import Optional

from bs4 import Tag

from .matchers import MatcherChain
from .signatures import (
    COMMAND_PREFIXES,
    DECORATION_SELECTORS,
    MESSAGE_TEXT_SELECTORS,
    MIN_MESSAGE_LENGTH,
)


def is_command(text: str) -> bool:
    """Chat commands (``!drop``, ``/me``) are never translated."""
    return text.startswith(COMMAND_PREFIXES)


class TextExtractor:
    """Pulls the human-readable message text out of a message node."""

    def __init__(self):
        self.text_chain = MatcherChain.from_selectors(MESSAGE_TEXT_SELECTORS)

    def extract(self, node: Tag) -> Optional[str]:
        for matcher in self.text_chain.matchers:
            found = matcher.find(node)
            if found is None:
                continue
            text = found.get_text().strip()
            if len(text) >= MIN_MESSAGE_LENGTH:
                return text

        # Fallback: whatever is left once usernames, timestamps, badges,
        # emotes and our own indicators are stripped from a copy
        clone = copy.copy(node)
        for selector in DECORATION_SELECTORS:
            for element in clone.select(selector):
                element.extract()

        text = clone.get_text().strip()
        return text if len(text) >= MIN_MESSAGE_LENGTH else None
