"""Per-source persistent settings stored as small JSON files."""

from __future__ import annotations

import json
import os
import threading
from typing import Callable, Dict, Optional

DEFAULT_PREFS_DIR = os.path.join("~", ".aio-webtoon", "prefs")


def default_prefs_dir() -> str:
    return os.path.expanduser(
        os.environ.get("AIO_WEBTOON_PREFS_DIR") or DEFAULT_PREFS_DIR
    )


class SourcePreferences:
    """
    String/bool key-value storage for one source namespace.

    Values are loaded lazily from ``<directory>/<namespace>.json`` on first
    access and every write commits the whole file again. A missing or
    unreadable file behaves like an empty one.
    """

    def __init__(
        self,
        directory: str,
        namespace: str,
        log_debug_fn: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.directory = directory
        self.namespace = namespace
        self.path = os.path.join(directory, f"{namespace}.json")
        self._values: Optional[Dict[str, object]] = None
        self._lock = threading.RLock()
        self._log_debug_fn = log_debug_fn

    def _debug(self, msg: str) -> None:
        if self._log_debug_fn:
            self._log_debug_fn(msg)

    def _load(self) -> Dict[str, object]:
        with self._lock:
            if self._values is not None:
                return self._values
            try:
                with open(self.path, "r", encoding="utf-8") as fh:
                    data = json.load(fh)
            except FileNotFoundError:
                data = {}
            except (OSError, ValueError) as e:
                self._debug(f"  Preferences at {self.path} unreadable ({e}); starting empty.")
                data = {}
            if not isinstance(data, dict):
                self._debug(f"  Preferences at {self.path} are not a mapping; starting empty.")
                data = {}
            self._values = data
            return data

    def _commit(self, values: Dict[str, object]) -> None:
        """Write ``values`` to disk, then make them the in-memory state."""
        os.makedirs(self.directory, exist_ok=True)
        tmp_path = self.path + ".tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(values, fh, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError):
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        self._values = values

    def _put(self, key: str, value: object) -> None:
        with self._lock:
            values = dict(self._load())
            values[key] = value
            self._commit(values)

    # --- strings ------------------------------------------------------------
    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else default

    def put_string(self, key: str, value: str) -> None:
        self._put(key, value)

    # --- booleans -----------------------------------------------------------
    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._load().get(key)
        return value if isinstance(value, bool) else default

    def put_bool(self, key: str, value: bool) -> None:
        self._put(key, bool(value))

    def reload(self) -> None:
        """Drop the in-memory copy so the next read hits the file again."""
        with self._lock:
            self._values = None


__all__ = [
    "DEFAULT_PREFS_DIR",
    "SourcePreferences",
    "default_prefs_dir",
]
