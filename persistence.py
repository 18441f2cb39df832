"""Key-value persistence for tasks, chat history and timer settings.

Every backend implements ``get(key) -> str | None`` and
``set(key, raw) -> bool``. Writes are best effort: a failure is logged and
reported as ``False``, never raised to the caller.
"""
from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import TypeAdapter, ValidationError as SchemaError

from errors import PersistenceError
from logging_bus import emit

TASKS_KEY = "tomatodo_tasks"
CHAT_KEY = "tomatodo_chat_history"
TIMER_SETTINGS_KEY = "tomatodo_timer_settings"


class KeyValueStore:
    def get(self, key: str) -> Optional[str]:  # pragma: no cover - interface
        raise NotImplementedError

    def set(self, key: str, raw: str) -> bool:  # pragma: no cover - interface
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, raw: str) -> bool:
        self.data[key] = raw
        return True


class JsonFileStore(KeyValueStore):
    """One ``<key>.json`` file per key under ``root``."""

    def __init__(self, root):
        self.root = Path(root).expanduser()

    def _path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            emit("WARN", "STORE", "Read failed", key=key, error=str(e))
            return None

    def set(self, key: str, raw: str) -> bool:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp = self._path_for(key).with_suffix(".tmp")
            tmp.write_text(raw, encoding="utf-8")
            tmp.replace(self._path_for(key))
        except OSError as e:
            emit("ERROR", "STORE", "Write failed", key=key, error=str(e))
            return False
        return True


class SqliteStore(KeyValueStore):
    """Single ``kv`` table in a SQLite database."""

    def __init__(self, db_path: str = "tomatodo.db"):
        Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(Path(db_path).expanduser()), check_same_thread=False)
        self._lock = threading.Lock()
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("CREATE TABLE IF NOT EXISTS kv(key TEXT PRIMARY KEY, value TEXT)")
        self.conn.commit()

    def get(self, key: str) -> Optional[str]:
        try:
            with self._lock:
                row = self.conn.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        except sqlite3.Error as e:
            emit("WARN", "STORE", "Read failed", key=key, error=str(e))
            return None
        return row[0] if row else None

    def set(self, key: str, raw: str) -> bool:
        try:
            with self._lock:
                self.conn.execute("INSERT OR REPLACE INTO kv(key, value) VALUES(?, ?)", (key, raw))
                self.conn.commit()
        except sqlite3.Error as e:
            emit("ERROR", "STORE", "Write failed", key=key, error=str(e))
            return False
        return True

    def close(self) -> None:
        self.conn.close()


def open_store(settings: Dict[str, Any]) -> KeyValueStore:
    """Build the backend named by the ``storage_backend`` setting."""
    backend = settings.get("storage_backend", "file")
    data_dir = Path(settings.get("data_dir", "~/.tomatodo")).expanduser()
    if backend == "sqlite":
        return SqliteStore(str(data_dir / "tomatodo.db"))
    if backend == "memory":
        return MemoryStore()
    if backend != "file":
        raise PersistenceError(f"Unknown storage backend: {backend}")
    return JsonFileStore(data_dir)


def load_record(store: KeyValueStore, key: str, adapter: TypeAdapter):
    """Read and validate a record; anything malformed counts as absent."""
    raw = store.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        return adapter.validate_json(raw)
    except SchemaError as e:
        emit("WARN", "STORE", "Discarded malformed record", key=key, errors=e.error_count())
        return None


def save_record(store: KeyValueStore, key: str, value: Any, adapter: TypeAdapter) -> bool:
    try:
        raw = adapter.dump_json(value, by_alias=True, exclude_none=True).decode("utf-8")
    except (ValueError, TypeError) as e:
        emit("ERROR", "STORE", "Encode failed", key=key, error=str(e))
        return False
    try:
        return bool(store.set(key, raw))
    except Exception as e:
        emit("ERROR", "STORE", "Write failed", key=key, error=str(e))
        return False


__all__ = [
    "TASKS_KEY",
    "CHAT_KEY",
    "TIMER_SETTINGS_KEY",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "SqliteStore",
    "open_store",
    "load_record",
    "save_record",
]
