"""
Preference store for the chat translator.

This module provides:
- JSON, YAML and TOML persistence chosen by file suffix
- Default preferences written on first use
- Change notification with old/new value pairs
- Hot-reloading when another process rewrites the preference file
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import toml
import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ..exceptions import ConfigurationError
from .schema import PreferenceChange, PreferenceFormat, Preferences

logger = logging.getLogger(__name__)

ChangeListener = Callable[[Dict[str, PreferenceChange]], None]


class PreferenceFileHandler(FileSystemEventHandler):
    """Forwards edits of the preference file to the store's event loop."""

    def __init__(self, store: 'PreferenceStore', loop: asyncio.AbstractEventLoop):
        self.store = store
        self.loop = loop

    def _matches(self, event) -> bool:
        if event.is_directory:
            return False
        paths = [getattr(event, "src_path", None), getattr(event, "dest_path", None)]
        return any(p and Path(p).resolve() == self.store.path.resolve() for p in paths)

    def on_modified(self, event):
        if self._matches(event):
            self.loop.call_soon_threadsafe(self.store.reload)

    on_created = on_modified
    on_moved = on_modified


class PreferenceStore:
    """
    Holds the two user preferences and notifies listeners on change.

    A store created with ``path=None`` keeps its values in memory only.
    """

    def __init__(self, path: Optional[Path] = None, format: Optional[PreferenceFormat] = None):
        self.path = Path(path) if path is not None else None
        self.format = format or self._detect_format()
        self._preferences = Preferences()
        self._listeners: List[ChangeListener] = []
        self._file_observer: Optional[Observer] = None

        self._format_handlers = {
            PreferenceFormat.JSON: self._load_json,
            PreferenceFormat.YAML: self._load_yaml,
            PreferenceFormat.TOML: self._load_toml,
        }
        self._format_writers = {
            PreferenceFormat.JSON: self._save_json,
            PreferenceFormat.YAML: self._save_yaml,
            PreferenceFormat.TOML: self._save_toml,
        }

        self._preferences = self._read()

    # Public API

    def get(self) -> Preferences:
        """Return the last-known preferences (defaults if none were saved)."""
        return self._preferences

    def set(self, partial: Optional[Dict[str, Any]] = None, **values: Any) -> Preferences:
        """
        Validate, persist and publish new preference values.

        Args:
            partial: Values keyed by external or attribute name
            **values: Same, as keyword arguments

        Returns:
            The updated preferences

        Raises:
            ConfigurationError: If a value is invalid or cannot be saved
        """
        changes = dict(partial or {})
        changes.update(values)

        try:
            updated = self._preferences.merged(changes)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid preference values: {e}", config_value=changes, cause=e)

        self._write(updated)
        self._publish(updated)
        return updated

    def reload(self) -> Preferences:
        """Reread the preference file and notify listeners of any difference."""
        self._publish(self._read())
        return self._preferences

    def on_change(self, listener: ChangeListener) -> None:
        """Register a listener called with ``{key: PreferenceChange}``."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def start_watching(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> bool:
        """Reload automatically when the preference file changes on disk."""
        if self.path is None or self._file_observer is not None:
            return False

        loop = loop or asyncio.get_running_loop()
        try:
            self._file_observer = Observer()
            handler = PreferenceFileHandler(self, loop)
            self._file_observer.schedule(handler, str(self.path.parent), recursive=False)
            self._file_observer.start()
            logger.info(f"Hot-reload enabled for {self.path}")
            return True
        except OSError as e:
            logger.warning(f"Failed to setup hot-reload: {e}")
            self._file_observer = None
            return False

    def stop_watching(self) -> None:
        if self._file_observer is not None:
            self._file_observer.stop()
            self._file_observer.join()
            self._file_observer = None

    # Private methods

    def _publish(self, updated: Preferences) -> None:
        changes = self._preferences.diff(updated)
        self._preferences = updated
        if not changes:
            return

        logger.info(f"Preferences changed: {', '.join(f'{k}={v.new_value!r}' for k, v in changes.items())}")
        for listener in list(self._listeners):
            try:
                listener(changes)
            except Exception as e:
                logger.error(f"Error in preference change listener: {e}")

    def _read(self) -> Preferences:
        if self.path is None:
            return self._preferences

        if not self.path.exists():
            logger.info(f"Preference file not found, writing defaults to {self.path}")
            defaults = Preferences()
            try:
                self._write(defaults)
            except ConfigurationError as e:
                logger.warning(f"Could not write default preferences: {e}")
            return defaults

        try:
            data = self._format_handlers[self.format](self.path)
            return Preferences.model_validate(data or {})
        except (ConfigurationError, ValidationError) as e:
            logger.warning(f"Using default preferences due to load failure: {e}")
            return Preferences()

    def _write(self, preferences: Preferences) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Cannot create {self.path.parent}: {e}", cause=e)
        self._format_writers[self.format](self.path, preferences.to_storage())
        logger.debug(f"Preferences saved to {self.path}")

    def _detect_format(self) -> PreferenceFormat:
        if self.path is None:
            return PreferenceFormat.JSON

        format_map = {
            '.json': PreferenceFormat.JSON,
            '.yaml': PreferenceFormat.YAML,
            '.yml': PreferenceFormat.YAML,
            '.toml': PreferenceFormat.TOML,
        }
        return format_map.get(self.path.suffix.lower(), PreferenceFormat.JSON)

    def _load_json(self, file_path: Path) -> Dict[str, Any]:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {file_path}: {e}", cause=e)
        except OSError as e:
            raise ConfigurationError(f"Failed to read {file_path}: {e}", cause=e)

    def _load_yaml(self, file_path: Path) -> Dict[str, Any]:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {file_path}: {e}", cause=e)
        except OSError as e:
            raise ConfigurationError(f"Failed to read {file_path}: {e}", cause=e)

    def _load_toml(self, file_path: Path) -> Dict[str, Any]:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return toml.load(f)
        except toml.TomlDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {file_path}: {e}", cause=e)
        except OSError as e:
            raise ConfigurationError(f"Failed to read {file_path}: {e}", cause=e)

    def _save_json(self, file_path: Path, data: Dict[str, Any]) -> None:
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise ConfigurationError(f"Failed to write {file_path}: {e}", cause=e)

    def _save_yaml(self, file_path: Path, data: Dict[str, Any]) -> None:
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True)
        except OSError as e:
            raise ConfigurationError(f"Failed to write {file_path}: {e}", cause=e)

    def _save_toml(self, file_path: Path, data: Dict[str, Any]) -> None:
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                toml.dump(data, f)
        except OSError as e:
            raise ConfigurationError(f"Failed to write {file_path}: {e}", cause=e)
