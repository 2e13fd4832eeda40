from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple


DEFAULT_PREFERENCES_PATH = Path.home() / ".config" / "chat-translate" / "preferences.json"
DEFAULT_PROVIDER_ENDPOINT = "https://translate.googleapis.com/translate_a/single"


def _env_delays(name: str, default: str) -> Tuple[float, ...]:
    raw = os.getenv(name, default)
    return tuple(float(part) for part in raw.split(",") if part.strip())


@dataclass
class Settings:
    # Preferences
    preferences_path: Path = field(default_factory=lambda: Path(os.getenv("CHAT_TRANSLATE_PREFERENCES", str(DEFAULT_PREFERENCES_PATH))))
    hot_reload: bool = field(default_factory=lambda: os.getenv("CHAT_TRANSLATE_HOT_RELOAD", "1") != "0")

    # Provider
    engine: str = field(default_factory=lambda: os.getenv("CHAT_TRANSLATE_ENGINE", "google"))
    provider_endpoint: str = field(default_factory=lambda: os.getenv("CHAT_TRANSLATE_ENDPOINT", DEFAULT_PROVIDER_ENDPOINT))
    provider_timeout: float = field(default_factory=lambda: float(os.getenv("CHAT_TRANSLATE_TIMEOUT", "10")))

    # Watcher timings, in seconds
    start_delay: float = field(default_factory=lambda: float(os.getenv("CHAT_TRANSLATE_START_DELAY", "1.0")))
    startup_scan_delays: Tuple[float, ...] = field(default_factory=lambda: _env_delays("CHAT_TRANSLATE_SCAN_DELAYS", "1,3,5"))
    container_retry_delay: float = field(default_factory=lambda: float(os.getenv("CHAT_TRANSLATE_RETRY_DELAY", "2.0")))
    rescan_delay: float = field(default_factory=lambda: float(os.getenv("CHAT_TRANSLATE_RESCAN_DELAY", "0.5")))
    scan_interval: float = field(default_factory=lambda: float(os.getenv("CHAT_TRANSLATE_SCAN_INTERVAL", "10.0")))
    visibility_restart_delay: float = 0.5

    # Control server
    control_host: str = field(default_factory=lambda: os.getenv("CHAT_TRANSLATE_CONTROL_HOST", "127.0.0.1"))
    control_port: int = field(default_factory=lambda: int(os.getenv("CHAT_TRANSLATE_CONTROL_PORT", "8765")))

    log_level: str = field(default_factory=lambda: os.getenv("CHAT_TRANSLATE_LOG_LEVEL", "INFO"))

    @property
    def control_url(self) -> str:
        return f"http://{self.control_host}:{self.control_port}/messages"

    @classmethod
    def immediate(cls, **overrides) -> "Settings":
        """Settings with (near) zero watcher delays, for one-shot runs and tests."""
        values = dict(
            start_delay=0.0,
            startup_scan_delays=(0.0,),
            container_retry_delay=0.01,
            rescan_delay=0.0,
            scan_interval=0.05,
            visibility_restart_delay=0.0,
            hot_reload=False,
        )
        values.update(overrides)
        return cls(**values)
