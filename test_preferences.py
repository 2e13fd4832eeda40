"""
Tests for the preference store.
"""

import asyncio
import json

import pytest
import toml
import yaml

from chat_translate.config import PreferenceChange, PreferenceFormat, PreferenceStore, Preferences
from chat_translate.exceptions import ConfigurationError


def test_defaults_written_on_first_use(tmp_path):
    path = tmp_path / "nested" / "preferences.json"
    store = PreferenceStore(path)

    assert store.get() == Preferences()
    assert store.get().target_language == "en"
    assert store.get().enabled is True
    with open(path) as f:
        assert json.load(f) == {"targetLanguage": "en", "enabled": True}


def test_set_notifies_with_old_and_new_values(tmp_path):
    store = PreferenceStore(tmp_path / "preferences.json")
    received = []
    store.on_change(received.append)

    store.set(targetLanguage="de")

    assert received == [{"targetLanguage": PreferenceChange("en", "de")}]
    with open(tmp_path / "preferences.json") as f:
        assert json.load(f)["targetLanguage"] == "de"


def test_attribute_names_accepted(tmp_path):
    store = PreferenceStore(tmp_path / "preferences.json")
    updated = store.set({"target_language": "ja", "enabled": False})
    assert updated.target_language == "ja"
    assert updated.enabled is False


def test_setting_same_value_is_silent(tmp_path):
    store = PreferenceStore(tmp_path / "preferences.json")
    received = []
    store.on_change(received.append)

    store.set(enabled=True, targetLanguage="en")
    assert received == []


def test_invalid_language_rejected(tmp_path):
    path = tmp_path / "preferences.json"
    store = PreferenceStore(path)
    before = path.read_text()

    with pytest.raises(ConfigurationError):
        store.set(targetLanguage="not a language!")

    assert path.read_text() == before
    assert store.get().target_language == "en"


def test_language_code_normalized():
    store = PreferenceStore()
    assert store.set(targetLanguage=" DE ").target_language == "de"
    assert store.set(targetLanguage="zh-CN").target_language == "zh-CN"


def test_in_memory_store_has_no_file():
    store = PreferenceStore()
    store.set(targetLanguage="es")
    assert store.path is None
    assert store.reload().target_language == "es"
    assert not store.start_watching()


def test_reload_picks_up_external_yaml_edit(tmp_path):
    path = tmp_path / "preferences.yaml"
    store = PreferenceStore(path)
    assert store.format is PreferenceFormat.YAML
    received = []
    store.on_change(received.append)

    with open(path, "w") as f:
        yaml.safe_dump({"targetLanguage": "ko", "enabled": False}, f)
    store.reload()

    assert store.get().target_language == "ko"
    assert received == [{
        "targetLanguage": PreferenceChange("en", "ko"),
        "enabled": PreferenceChange(True, False),
    }]


def test_toml_store_persists(tmp_path):
    path = tmp_path / "preferences.toml"
    PreferenceStore(path).set(targetLanguage="pt-BR")

    assert toml.loads(path.read_text())["targetLanguage"] == "pt-BR"
    assert PreferenceStore(path).get().target_language == "pt-BR"


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "preferences.json"
    path.write_text("{not json")
    assert PreferenceStore(path).get() == Preferences()

    path.write_text(json.dumps({"targetLanguage": 42}))
    assert PreferenceStore(path).get() == Preferences()


def test_listener_errors_do_not_stop_others():
    store = PreferenceStore()
    received = []

    def broken(changes):
        raise RuntimeError("boom")

    store.on_change(broken)
    store.on_change(received.append)
    store.set(enabled=False)

    assert received == [{"enabled": PreferenceChange(True, False)}]


def test_hot_reload_on_file_change(tmp_path):
    path = tmp_path / "preferences.json"

    async def run():
        store = PreferenceStore(path)
        assert store.start_watching()
        try:
            path.write_text(json.dumps({"targetLanguage": "it", "enabled": True}))
            for _ in range(100):
                if store.get().target_language == "it":
                    break
                await asyncio.sleep(0.05)
        finally:
            store.stop_watching()
        return store.get().target_language

    assert asyncio.run(run()) == "it"
