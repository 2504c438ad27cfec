"""
Mirror log: the saved history of analyses.

The whole history is one JSON array stored under a single key; every
mutation rewrites the full snapshot. Audio never reaches this store.
"""

import secrets
import sqlite3
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from deception_mirror import database
from deception_mirror.errors import LogStoreError
from deception_mirror.logger import get_logger
from deception_mirror.models import LogEntry

logger = get_logger(__name__)

STORAGE_KEY = "deception-mirror-log"
EXPORT_FILE_NAME = "deception_mirror_log.json"

_entries_adapter = TypeAdapter(List[LogEntry])


def _new_entry_id() -> str:
    return datetime.now(timezone.utc).isoformat() + secrets.token_hex(5)[:9]


def dump_entries(entries: List[LogEntry], indent: Optional[int] = None) -> str:
    return _entries_adapter.dump_json(entries, by_alias=True, indent=indent).decode("utf-8")


def load_entries(raw: str) -> List[LogEntry]:
    return _entries_adapter.validate_json(raw)


class MirrorLog:
    def __init__(self, db_path: str = database.DB_NAME):
        self.db_path = db_path
        self._entries: List[LogEntry] = []
        try:
            database.init_db(db_path)
        except sqlite3.Error as exc:
            logger.error("Could not open mirror log storage %s: %s", db_path, exc)
            raise LogStoreError("Could not open the mirror log storage.") from exc
        self._load()

    def _load(self) -> None:
        try:
            raw = database.read_value(STORAGE_KEY, self.db_path)
        except sqlite3.Error as exc:
            logger.error("Failed to load mirror log: %s", exc)
            raise LogStoreError("Could not load the mirror log.") from exc
        if not raw:
            return
        try:
            self._entries = load_entries(raw)
        except PydanticValidationError as exc:
            # unreadable snapshot: start empty, the next write replaces it
            logger.error("Stored mirror log is unreadable, starting empty: %s", exc)
            self._entries = []
        logger.info("Mirror log loaded | entries=%d", len(self._entries))

    def _save(self, entries: List[LogEntry]) -> None:
        try:
            database.write_value(STORAGE_KEY, dump_entries(entries), self.db_path)
        except sqlite3.Error as exc:
            logger.error("Failed to save mirror log: %s", exc)
            raise LogStoreError("Could not save to the mirror log.") from exc
        self._entries = entries

    @property
    def entries(self) -> List[LogEntry]:
        """Newest first."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, entry_data: Dict[str, Any]) -> LogEntry:
        """Store a new entry built from ``claim``, ``verticals`` and ``result``."""
        entry = LogEntry(
            id=_new_entry_id(),
            timestamp=int(time.time() * 1000),
            **entry_data,
        )
        self._save([entry] + self._entries)
        logger.info("Mirror log add | id=%s entries=%d", entry.id, len(self._entries))
        return entry

    def delete(self, entry_id: str) -> None:
        self._save([e for e in self._entries if e.id != entry_id])
        logger.info("Mirror log delete | id=%s entries=%d", entry_id, len(self._entries))

    def clear(self) -> None:
        self._save([])
        logger.info("Mirror log cleared")

    def search(self, query: str) -> List[LogEntry]:
        if not query or not query.strip():
            return self.entries
        needle = query.strip().lower()
        return [e for e in self._entries if needle in e.claim.lower()]

    def export_json(self) -> str:
        return dump_entries(self._entries, indent=2)
