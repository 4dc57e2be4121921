"""
Local key-value persistence for BibliaAI.

Schema
──────
table: kv
  key   TEXT PRIMARY KEY
  value TEXT NOT NULL

Two keys are used: ``theme`` (the display preference) and ``study_history``
(the serialised timeline). Every write is committed before the call returns.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

THEME_KEY = "theme"
HISTORY_KEY = "study_history"


class StorageDecodeError(ValueError):
    """A persisted value exists but cannot be decoded."""


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class SQLiteStorage:
    """SQLite-backed string storage, one row per key."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.init_db()

    @contextmanager
    def _connect(self):
        """Yield a connected sqlite3.Connection, creating the file/dir if needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path))
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create the kv table if it doesn't exist yet."""
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key   TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
        logger.info("Storage initialised at %s", self.path)

    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def remove(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))


class MemoryStorage:
    """Dict-backed storage for tests and throwaway runs."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


def load_json(storage: KeyValueStorage, key: str) -> Any:
    """Return the decoded JSON value under *key*, or None if absent.

    Raises:
        StorageDecodeError: If the stored text is not valid JSON.
    """
    raw = storage.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StorageDecodeError(f"Corrupt value under {key!r}: {exc}") from exc


# ── Theme preference ───────────────────────────────────────────────────────


class ThemePreference:
    """Process-wide light/dark flag, loaded once and changed only by toggle()."""

    VALUES = ("light", "dark")

    def __init__(self, storage: KeyValueStorage, default: str = "light") -> None:
        self.storage = storage
        saved = storage.get(THEME_KEY)
        self._value = saved if saved in self.VALUES else default
        self._lock = threading.Lock()

    @property
    def value(self) -> str:
        return self._value

    @property
    def is_dark(self) -> bool:
        return self._value == "dark"

    def toggle(self) -> str:
        """Flip the theme, persist it, and return the new value."""
        with self._lock:
            new_value = "light" if self.is_dark else "dark"
            self.storage.set(THEME_KEY, new_value)
            self._value = new_value
        logger.info("Theme set to %s", new_value)
        return new_value
