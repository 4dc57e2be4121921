"""
Study timeline for BibliaAI.

The timeline is a single JSON list stored under the ``study_history`` key,
newest first, capped at ``MAX_ENTRIES``. An entry is a duplicate when both
its title and theme exactly match an existing one; duplicates are dropped
without touching the original's position or timestamp.
"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from typing import Optional

from pydantic import ValidationError

from core.models import TimelineEntry
from core.storage import HISTORY_KEY, KeyValueStorage, StorageDecodeError, load_json

logger = logging.getLogger(__name__)

MAX_ENTRIES = 10


class HistoryStore:
    """Capped, deduplicated, persisted list of past generations."""

    def __init__(self, storage: KeyValueStorage, max_entries: int = MAX_ENTRIES) -> None:
        self.storage = storage
        self.max_entries = max_entries
        # Serialises add/clear across request threads.
        self._lock = threading.Lock()
        self._entries: list[TimelineEntry] = self._load()

    def _load(self) -> list[TimelineEntry]:
        try:
            data = load_json(self.storage, HISTORY_KEY)
            if data is None:
                return []
            if not isinstance(data, list):
                raise StorageDecodeError(f"Expected a list, got {type(data).__name__}")
            return [TimelineEntry.model_validate(item) for item in data]
        except (StorageDecodeError, ValidationError) as exc:
            logger.warning("Ignoring corrupt study history: %s", exc)
            return []

    def _persist(self, entries: list[TimelineEntry]) -> None:
        self.storage.set(
            HISTORY_KEY,
            json.dumps([entry.model_dump() for entry in entries], ensure_ascii=False),
        )

    def add(self, title: str, theme: str) -> Optional[TimelineEntry]:
        """Record a generation unless the same (title, theme) is already listed.

        The in-memory list only changes once the new list has been persisted.

        Args:
            title: Study title.
            theme: Short theme label.

        Returns:
            The new TimelineEntry, or None if it was a duplicate.
        """
        with self._lock:
            if any(e.title == title and e.theme == theme for e in self._entries):
                logger.info("Skipping duplicate history entry title=%r theme=%r", title, theme)
                return None

            entry = TimelineEntry(
                id=str(uuid.uuid4()),
                title=title,
                theme=theme,
                timestamp=int(time.time() * 1000),
            )
            updated = [entry, *self._entries][: self.max_entries]
            self._persist(updated)
            self._entries = updated

        logger.info("Saved history entry id=%s title=%r", entry.id, title)
        return entry

    def list(self) -> list[TimelineEntry]:
        """Return the entries, most recent first."""
        return list(self._entries)

    def get(self, entry_id: str) -> Optional[TimelineEntry]:
        """Return the entry with *entry_id*, or None if not found."""
        return next((e for e in self._entries if e.id == entry_id), None)

    def clear(self) -> None:
        """Drop every entry and the persisted list."""
        with self._lock:
            self.storage.remove(HISTORY_KEY)
            self._entries = []
        logger.info("Cleared study history")
