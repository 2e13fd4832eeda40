"""
Tests for the mutation watcher and the translator lifecycle around it.
"""

import asyncio

from chat_translate.app import ChatTranslator
from chat_translate.settings import Settings
from chat_translate.signatures import INDICATOR_MARK
from chat_translate.watcher import active_watcher

from conftest import CHAT_PAGE, FakeTranslator, chat_line, container_of, make_app, server_error, settle


EMPTY_PAGE = '<html><body><div class="channel-header">Offline</div></body></html>'

POPULATED_PAGE = CHAT_PAGE.replace(
    '<div data-a-target="chat-scrollable-area"></div>',
    '<div data-a-target="chat-scrollable-area">'
    + chat_line("hello world", "alice")
    + chat_line("good game", "bob")
    + '</div>',
)


def fragments(app):
    return [f.get_text() for f in app.document.select(".text-fragment")]


def test_existing_messages_translated_on_start():
    async def run():
        app = make_app(POPULATED_PAGE)
        await app.start()
        await settle(app)

        assert fragments(app) == ["hola mundo" + INDICATOR_MARK, "buen juego" + INDICATOR_MARK]
        await app.close()

    asyncio.run(run())


def test_translate_once_without_watching():
    async def run():
        app = make_app(POPULATED_PAGE, language="fr")
        submitted = await app.translate_once()

        assert submitted >= 2
        assert fragments(app) == ["bonjour le monde" + INDICATOR_MARK, "bien joué" + INDICATOR_MARK]
        assert app.document.observer_count == 0
        await app.close()

    asyncio.run(run())


def test_bulk_insert_translates_each_message():
    async def run():
        app = make_app()
        await app.start()
        await settle(app)

        batch = app.document.append(
            container_of(app),
            '<div class="batch">' + chat_line("hello world") + chat_line("good game", "bob") + '</div>',
        )[0]
        await settle(app)

        texts = [f.get_text() for f in batch.select(".text-fragment")]
        assert texts == ["hola mundo" + INDICATOR_MARK, "buen juego" + INDICATOR_MARK]
        # The wrapper itself never went to the provider as one message
        assert {text for text, _ in app.translator.calls} <= {"hello world", "good game"}
        await app.close()

    asyncio.run(run())


def test_only_one_subscription_per_process():
    async def run():
        app = make_app()
        await app.start()
        await settle(app)
        assert app.document.observer_count == 1

        app.watcher.start()
        assert app.document.observer_count == 1

        other = ChatTranslator(app.document, app.preferences, FakeTranslator(), Settings.immediate())
        other.watcher.start()
        assert app.document.observer_count == 1
        assert not app.watcher.active
        assert active_watcher() is other.watcher

        other.watcher.stop()
        await app.close()

    asyncio.run(run())


def test_stop_is_idempotent():
    async def run():
        app = make_app()
        await app.start()
        await settle(app)

        app.watcher.stop()
        app.watcher.stop()

        assert not app.watcher.active
        assert app.document.observer_count == 0
        assert active_watcher() is None
        await app.close()

    asyncio.run(run())


def test_container_acquired_once_it_appears():
    async def run():
        app = make_app(EMPTY_PAGE)
        await app.start()
        await settle(app)
        assert app.watcher.active
        assert not app.watcher.observing

        app.document.append(app.document.body, '<div data-a-target="chat-scrollable-area"></div>')
        await asyncio.sleep(0.05)
        assert app.watcher.observing

        app.document.append(container_of(app), chat_line("hello world"))
        await settle(app)
        assert fragments(app) == ["hola mundo" + INDICATOR_MARK]
        await app.close()

    asyncio.run(run())


def test_rebuilt_page_is_reacquired():
    async def run():
        app = make_app()
        await app.start()
        await settle(app)
        old_container = app.watcher.container

        app.document.replace_body(
            '<section data-a-target="chat-container"><div data-a-target="chat-scrollable-area"></div></section>'
        )
        await settle(app)

        assert app.watcher.observing
        assert app.watcher.container is not old_container
        assert app.watcher.container is container_of(app)

        app.document.append(container_of(app), chat_line("good game"))
        await settle(app)
        assert fragments(app) == ["buen juego" + INDICATOR_MARK]
        await app.close()

    asyncio.run(run())


def test_disable_and_enable():
    async def run():
        app = make_app()
        await app.start()
        await settle(app)

        app.preferences.set(enabled=False)
        assert not app.watcher.active
        assert app.document.observer_count == 0

        app.document.append(container_of(app), chat_line("hello world"))
        await settle(app)
        assert fragments(app) == ["hello world"]
        assert app.translator.calls == []

        app.preferences.set(enabled=True)
        await settle(app)
        assert app.watcher.observing
        assert fragments(app) == ["hola mundo" + INDICATOR_MARK]
        await app.close()

    asyncio.run(run())


def test_becoming_visible_restarts_watcher():
    async def run():
        app = make_app()
        await app.start()
        await settle(app)
        app.watcher.stop()

        app.document.set_hidden(True)
        await settle(app)
        assert not app.watcher.active

        app.document.set_hidden(False)
        await settle(app)
        assert app.watcher.active
        assert app.watcher.observing
        await app.close()

    asyncio.run(run())


def test_close_stops_everything():
    async def run():
        app = make_app()
        await app.start()
        await settle(app)
        await app.close()

        assert not app.watcher.active
        assert app.document.observer_count == 0
        assert app.translator.closed

    asyncio.run(run())


def test_failed_message_retried_by_periodic_scan():
    async def run():
        app = make_app()
        await app.start()
        await settle(app)

        app.translator.error = server_error()
        app.document.append(container_of(app), chat_line("hello world"))
        await settle(app)
        assert fragments(app) == ["hello world"]

        app.translator.error = None
        await settle(app)
        assert fragments(app) == ["hola mundo" + INDICATOR_MARK]
        await app.close()

    asyncio.run(run())


def test_new_line_inside_translated_wrapper():
    def line(text):
        return f'<div class="chat-line__message" data-a-target="chat-line-message">{text}</div>'

    async def run():
        app = make_app()
        await app.start()
        await settle(app)

        wrapper = app.document.append(
            container_of(app),
            '<div class="chat-scrollable-area__message-container">' + line("hello world") + '</div>',
        )[0]
        await settle(app)

        app.document.append(wrapper, line("good game"))
        await settle(app)

        texts = [node.get_text() for node in wrapper.select(".chat-line__message")]
        assert texts == ["hola mundo" + INDICATOR_MARK, "buen juego" + INDICATOR_MARK]
        assert app.translator.calls.count(("hello world", "es")) == 1
        await app.close()

    asyncio.run(run())


def test_hidden_again_before_restart():
    async def run():
        app = make_app()
        await app.start()
        await settle(app)
        app.watcher.stop()

        app.document.set_hidden(True)
        app.document.set_hidden(False)
        app.document.set_hidden(True)
        await settle(app)

        assert not app.watcher.active
        await app.close()

    asyncio.run(run())


def test_fired_timers_are_forgotten():
    async def run():
        app = make_app()
        await app.start()
        await settle(app)

        for _ in range(5):
            app.watcher.reset_and_rescan()
        await settle(app)

        # Only the next periodic scan is still pending
        assert len(app.watcher._timers) == 1
        await app.close()
        assert len(app.watcher._timers) == 0

    asyncio.run(run())
