import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from chat_translate.app import ChatTranslator
from chat_translate.config import PreferenceStore
from chat_translate.document import SoupDocument
from chat_translate.exceptions import ProviderError
from chat_translate.settings import Settings
from chat_translate.translators.base import BaseTranslator
from chat_translate.watcher import active_watcher


CHAT_PAGE = """<html><body>
<div class="channel-header">A streamer is live</div>
<section data-a-target="chat-container">
  <div data-a-target="chat-scrollable-area"></div>
</section>
</body></html>"""

TRANSLATIONS = {
    ("hello world", "es"): "hola mundo",
    ("hello world", "fr"): "bonjour le monde",
    ("good game", "es"): "buen juego",
    ("good game", "fr"): "bien joué",
}


def chat_line(text: str, user: str = "alice") -> str:
    return (
        '<div class="chat-line__message" data-a-target="chat-line-message">'
        '<span class="chat-line__timestamp">12:01</span>'
        f'<span class="chat-author__display-name">{user}</span>'
        '<span aria-hidden="true">: </span>'
        f'<span class="text-fragment">{text}</span>'
        '</div>'
    )


class FakeTranslator(BaseTranslator):
    """Answers from a fixed table and records every call."""

    def __init__(self, table: Optional[Dict[Tuple[str, str], str]] = None):
        self.table = dict(TRANSLATIONS if table is None else table)
        self.calls: List[Tuple[str, str]] = []
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    async def translate(self, text: str, target_lang: str) -> str:
        self.calls.append((text, target_lang))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.table.get((text, target_lang), text)

    async def close(self) -> None:
        self.closed = True


def server_error() -> ProviderError:
    return ProviderError("HTTP error! status: 500", status=500)


def make_app(markup: str = CHAT_PAGE, language: str = "es", enabled: bool = True,
             store: Optional[PreferenceStore] = None, **settings) -> ChatTranslator:
    if store is None:
        store = PreferenceStore()
        store.set(targetLanguage=language, enabled=enabled)
    return ChatTranslator(SoupDocument(markup), store, FakeTranslator(), Settings.immediate(**settings))


def container_of(app: ChatTranslator):
    return app.document.select_one('[data-a-target="chat-scrollable-area"]')


async def settle(app: ChatTranslator, rounds: int = 4) -> None:
    """Let timers, mutation batches and translation tasks run out."""
    for _ in range(rounds):
        await asyncio.sleep(0.03)
        await app.pipeline.drain()


@pytest.fixture(autouse=True)
def no_leftover_watcher():
    yield
    watcher = active_watcher()
    if watcher is not None:
        watcher.stop()
