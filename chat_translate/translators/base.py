from __future__ import annotations

import abc
from typing import Optional

from ..settings import Settings


class BaseTranslator(abc.ABC):
    """Abstract asynchronous translation provider."""

    @abc.abstractmethod
    async def translate(self, text: str, target_lang: str) -> str:
        """Translate ``text`` into ``target_lang`` (source language auto-detected).

        Raises ProviderError on transport failures, non-2xx responses and
        malformed bodies.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release network resources."""


def get_translator(engine: str, settings: Optional[Settings] = None) -> BaseTranslator:
    settings = settings or Settings()
    engine = (engine or "google").lower()
    if engine == "google":
        from .google import GoogleTranslateClient
        return GoogleTranslateClient(
            endpoint=settings.provider_endpoint,
            timeout=settings.provider_timeout,
        )
    else:
        raise ValueError(f"Unknown translation engine: {engine}")
