"""
Tests for the Google Translate client against a local aiohttp server.
"""

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from chat_translate.exceptions import ProviderError
from chat_translate.settings import Settings
from chat_translate.translators import GoogleTranslateClient, get_translator, parse_translation


def test_parse_joins_segments():
    data = [[["hola ", "hello ", None, None], ["mundo", "world", None, None]], None, "en"]
    assert parse_translation(data) == "hola mundo"


@pytest.mark.parametrize("data", [
    {},
    [],
    [None],
    [[]],
    [["hola"]],
    [[[None]]],
    [[[42, "hello"]]],
])
def test_parse_rejects_malformed_bodies(data):
    with pytest.raises(ProviderError):
        parse_translation(data)


def test_get_translator():
    client = get_translator("google", Settings(provider_endpoint="http://localhost:1/x", provider_timeout=3))
    assert isinstance(client, GoogleTranslateClient)
    assert client.endpoint == "http://localhost:1/x"

    with pytest.raises(ValueError):
        get_translator("babelfish")


async def serve(handler):
    app = web.Application()
    app.router.add_get("/translate_a/single", handler)
    server = TestServer(app)
    await server.start_server()
    return server


def run_against(handler, text="hello world", language="es"):
    async def run():
        server = await serve(handler)
        client = GoogleTranslateClient(str(server.make_url("/translate_a/single")), timeout=5)
        try:
            return await client.translate(text, language)
        finally:
            await client.close()
            await server.close()

    return asyncio.run(run())


def test_successful_translation():
    seen = {}

    async def handler(request):
        seen.update(request.query)
        return web.json_response([[["hola mundo", "hello world", None, None]], None, "en"])

    assert run_against(handler) == "hola mundo"
    assert seen == {"client": "gtx", "sl": "auto", "tl": "es", "dt": "t", "q": "hello world"}


def test_server_error_raises_with_status():
    async def handler(request):
        return web.Response(status=500, text="oops")

    with pytest.raises(ProviderError) as excinfo:
        run_against(handler)
    assert excinfo.value.status == 500


def test_non_json_body_raises():
    async def handler(request):
        return web.Response(text="<html>captcha</html>", content_type="text/html")

    with pytest.raises(ProviderError):
        run_against(handler)


def test_malformed_json_raises():
    async def handler(request):
        return web.json_response({"error": "unexpected"})

    with pytest.raises(ProviderError):
        run_against(handler)


def test_unreachable_provider_raises():
    async def run():
        client = GoogleTranslateClient("http://127.0.0.1:9/translate_a/single", timeout=2)
        try:
            await client.translate("hello world", "es")
        finally:
            await client.close()

    with pytest.raises(ProviderError):
        asyncio.run(run())
