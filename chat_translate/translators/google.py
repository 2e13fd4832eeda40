from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from ..exceptions import ProviderError
from ..settings import DEFAULT_PROVIDER_ENDPOINT
from .base import BaseTranslator

logger = logging.getLogger(__name__)


def parse_translation(data: Any) -> str:
    """Join the translated segments of a ``translate_a/single`` response.

    The body's first element is a list of ``[translated, original, ...]``
    segments; anything else is a malformed response.
    """
    if not isinstance(data, list) or not data:
        raise ProviderError("Invalid translation response: expected a non-empty list")

    segments = data[0]
    if not isinstance(segments, list) or not segments:
        raise ProviderError("Invalid translation response: missing segment list")

    parts = []
    for segment in segments:
        if not isinstance(segment, list) or not segment:
            raise ProviderError(f"Invalid translation response: bad segment {segment!r}")
        translated = segment[0]
        if translated is None:
            continue
        if not isinstance(translated, str):
            raise ProviderError(f"Invalid translation response: bad segment {segment!r}")
        parts.append(translated)

    translated_text = "".join(parts)
    if not translated_text:
        raise ProviderError("Invalid translation response: empty translation")
    return translated_text


class GoogleTranslateClient(BaseTranslator):
    """Client for the public Google Translate web endpoint."""

    def __init__(self, endpoint: str = DEFAULT_PROVIDER_ENDPOINT, timeout: float = 10, session: Optional[aiohttp.ClientSession] = None):
        self.endpoint = endpoint
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

        self.headers = {
            "accept": "application/json",
            "user-agent": "Mozilla/5.0"
        }

    async def get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=self.headers)
            self._owns_session = True
        return self._session

    async def translate(self, text: str, target_lang: str) -> str:
        session = await self.get_session()
        # sl: source language, tl: target language, dt: response format, q: query
        params = {
            "client": "gtx",
            "sl": "auto",
            "tl": target_lang,
            "dt": "t",
            "q": text,
        }

        try:
            async with session.get(self.endpoint, params=params) as resp:
                if not 200 <= resp.status < 300:
                    raise ProviderError(f"HTTP error! status: {resp.status}", status=resp.status, url=self.endpoint)
                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    raise ProviderError(f"Invalid JSON in translation response: {e}", status=resp.status, cause=e)
        except aiohttp.ClientError as e:
            raise ProviderError(f"Translation request failed: {e}", url=self.endpoint, cause=e)
        except asyncio.TimeoutError as e:
            raise ProviderError("Translation request timed out", url=self.endpoint, cause=e)

        return parse_translation(data)

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
