from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any

from app.application.ports.settings_provider import SettingsProviderPort


class MemorySettingsStore(SettingsProviderPort):
    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value

    def reload(self) -> None:
        return None


class JsonSettingsStore(SettingsProviderPort):
    """
    Key/value settings read from a JSON object on disk.
    Values are re-read after `ttl_seconds` or on an explicit reload().
    A missing or corrupted file behaves as an empty store so defaults apply.
    """

    def __init__(self, path: str, ttl_seconds: float = 60.0) -> None:
        self._path = Path(path)
        self._ttl_seconds = ttl_seconds
        self._values: dict[str, Any] | None = None
        self._loaded_at = 0.0
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            self._logger.warning("Settings file unreadable, using defaults", extra={"error": str(e)})
            return {}
        if not isinstance(data, dict):
            self._logger.warning("Settings file is not a JSON object, using defaults")
            return {}
        return data

    def _current(self) -> dict[str, Any]:
        with self._lock:
            expired = time.monotonic() - self._loaded_at >= self._ttl_seconds
            if self._values is None or expired:
                self._values = self._load()
                self._loaded_at = time.monotonic()
            return self._values

    def get(self, key: str, default: Any = None) -> Any:
        return self._current().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self._path.with_suffix(".json.tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(self._path)
            self._values = data
            self._loaded_at = time.monotonic()

    def reload(self) -> None:
        with self._lock:
            self._values = None
