from chat_translate.document import SoupDocument
from chat_translate.extractor import TextExtractor, is_command

from conftest import chat_line


def first(markup: str, selector: str = "div"):
    return SoupDocument(markup).select_one(selector)


def test_text_fragment_preferred():
    node = first(chat_line("  hello world  "))
    assert TextExtractor().extract(node) == "hello world"


def test_fallback_strips_decorations():
    node = first(
        '<div class="chat-line__message">'
        '<span class="chat-author__display-name">bob</span>'
        '<span class="chat-line__timestamp">12:00</span>'
        '<span class="chat-badge">sub</span>'
        '<img alt="Kappa" src="kappa.png"> nice play'
        '</div>'
    )
    assert TextExtractor().extract(node) == "nice play"
    # The live node keeps its decorations
    assert node.select_one(".chat-author__display-name") is not None
    assert node.select_one("img") is not None


def test_fallback_ignores_translation_indicator():
    node = first('<div class="chat-line">hola mundo<span class="translation-indicator"> \U0001F310</span></div>')
    assert TextExtractor().extract(node) == "hola mundo"


def test_only_decorations_yields_nothing():
    node = first(
        '<div class="chat-line">'
        '<span class="chat-author__display-name">bob</span>'
        '<span class="chat-line__timestamp">12:00</span>'
        '</div>'
    )
    assert TextExtractor().extract(node) is None


def test_short_primary_text_falls_through():
    node = first('<div class="chat-line"><span class="text-fragment">a</span> b</div>')
    assert TextExtractor().extract(node) == "a b"


def test_is_command():
    assert is_command("!drops")
    assert is_command("/me waves")
    assert not is_command("hello !world")
    assert not is_command("good game")
