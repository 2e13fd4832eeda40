from .base import BaseTranslator, get_translator
from .google import GoogleTranslateClient, parse_translation

__all__ = ["BaseTranslator", "GoogleTranslateClient", "get_translator", "parse_translation"]
