"""
Preference schema definitions using Pydantic models.

The preference file holds exactly two user-facing values. They are stored
and reported under their external names (``targetLanguage`` and
``enabled``) while Python code uses snake_case attributes.
"""

from enum import Enum
from typing import Any, Dict, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


TARGET_LANGUAGE_KEY = "targetLanguage"
ENABLED_KEY = "enabled"

LANGUAGE_CODE_PATTERN = r"^[a-z]{2,3}(-[A-Za-z0-9]{2,8})?$"


class PreferenceFormat(Enum):
    """Supported preference file formats."""
    JSON = "json"
    YAML = "yaml"
    TOML = "toml"


class PreferenceChange(NamedTuple):
    """Old/new value pair delivered to change listeners."""
    old_value: Any
    new_value: Any


class Preferences(BaseModel):
    """User preferences for the chat translator."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    target_language: str = Field(
        default="en",
        alias=TARGET_LANGUAGE_KEY,
        pattern=LANGUAGE_CODE_PATTERN,
        description="Language code messages are translated into"
    )

    enabled: bool = Field(
        default=True,
        alias=ENABLED_KEY,
        description="Whether new chat messages are translated"
    )

    @field_validator("target_language", mode="before")
    @classmethod
    def normalize_language(cls, v):
        if isinstance(v, str):
            v = v.strip()
            # "ZH-cn" -> "zh-cn": only the primary subtag is case-folded
            head, sep, tail = v.partition("-")
            v = head.lower() + sep + tail
        return v

    def to_storage(self) -> Dict[str, Any]:
        """Serialize under the external key names."""
        return self.model_dump(by_alias=True)

    def merged(self, partial: Dict[str, Any]) -> "Preferences":
        """Return a validated copy with ``partial`` applied.

        ``partial`` may use either the external key names or the attribute
        names.
        """
        data = self.to_storage()
        for key, value in partial.items():
            data[STORAGE_KEYS.get(key, key)] = value
        return Preferences.model_validate(data)

    def diff(self, other: "Preferences") -> Dict[str, PreferenceChange]:
        """Changes from ``self`` to ``other``, keyed by external name."""
        old, new = self.to_storage(), other.to_storage()
        return {
            key: PreferenceChange(old[key], new[key])
            for key in new
            if old.get(key) != new[key]
        }


STORAGE_KEYS = {
    "target_language": TARGET_LANGUAGE_KEY,
    "enabled": ENABLED_KEY,
}
