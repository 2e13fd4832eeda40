from __future__ import annotations

import logging
from typing import Dict, NamedTuple, Optional

logger = logging.getLogger(__name__)


class CacheKey(NamedTuple):
    original_text: str
    target_language: str


class TranslationCache:
    """In-memory translations for the lifetime of the page.

    Never evicted piecemeal; ``clear`` drops everything when the target
    language changes or a full retranslation is requested.
    """

    def __init__(self):
        self._entries: Dict[CacheKey, str] = {}
        self.hits = 0
        self.misses = 0

    def get(self, text: str, language: str) -> Optional[str]:
        translated = self._entries.get(CacheKey(text, language))
        if translated is None:
            self.misses += 1
        else:
            self.hits += 1
        return translated

    def put(self, text: str, language: str, translated: str) -> None:
        if not text or not translated or text == translated:
            return
        self._entries[CacheKey(text, language)] = translated

    def clear(self) -> None:
        if self._entries:
            logger.info(f"Cleared {len(self._entries)} cached translations")
        self._entries.clear()

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
