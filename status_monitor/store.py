"""
Persistence gateway: a string-keyed blob store plus the two documents kept in it.

Each key holds one JSON document and is replaced as a whole, so readers only
ever see a complete previous or complete new value.
"""

from __future__ import annotations

import json
import re
import sqlite3
import threading
from pathlib import Path
from typing import Any, Protocol

from status_monitor.config import CONFIG_KEY, Configuration, parse_config
from status_monitor.models import StateMap, state_from_dict, state_to_dict


STATE_KEY = "uptime_data"

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]{1,120}$")


class StatusMonitorError(Exception):
    """Base exception for status monitor failures."""


class StoreError(StatusMonitorError):
    """The persistence backend failed or returned an undecodable document."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str) -> None: ...


def _check_key(key: str) -> str:
    if not _KEY_RE.match(key or ""):
        raise StoreError(f"invalid store key: {key!r}")
    return key


class MemoryStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(_check_key(key))

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[_check_key(key)] = str(value)


class FileStore:
    """One file per key under a directory; writes go through a temp file + rename."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_check_key(key)}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(f"failed to read {path}: {exc}") from exc

    def put(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(f"{path.name}.tmp")
            tmp.write_text(value, encoding="utf-8")
            tmp.replace(path)
        except OSError as exc:
            raise StoreError(f"failed to write {path}: {exc}") from exc


class SqliteStore:
    def __init__(self, db_path: str | Path) -> None:
        p = str(db_path or "").strip()
        if not p:
            raise ValueError("Missing db_path")
        self.db_path = p
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=30, isolation_level=None, check_same_thread=False)
        conn.execute("PRAGMA busy_timeout = 5000;")
        return conn

    def _ensure_schema(self) -> None:
        try:
            conn = self._connect()
            try:
                conn.execute("CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)")
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StoreError(f"failed to initialise {self.db_path}: {exc}") from exc

    def get(self, key: str) -> str | None:
        try:
            conn = self._connect()
            try:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (_check_key(key),)).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StoreError(f"failed to read {key!r}: {exc}") from exc
        return None if row is None else str(row[0])

    def put(self, key: str, value: str) -> None:
        try:
            conn = self._connect()
            try:
                conn.execute(
                    "INSERT INTO kv (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (_check_key(key), str(value)),
                )
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StoreError(f"failed to write {key!r}: {exc}") from exc


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def load_state(store: KeyValueStore) -> StateMap:
    raw = store.get(STATE_KEY)
    if raw is None:
        return {}
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise StoreError(f"stored {STATE_KEY!r} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise StoreError(f"stored {STATE_KEY!r} must be a JSON object, got {type(data).__name__}")
    return state_from_dict(data)


def save_state(store: KeyValueStore, state: StateMap) -> None:
    store.put(STATE_KEY, _json_dumps(state_to_dict(state)))


def load_state_document(store: KeyValueStore) -> dict[str, Any]:
    """Persisted state for readers; whatever the last tick wrote, or empty."""
    return state_to_dict(load_state(store))


def load_config(store: KeyValueStore, *, default: Configuration | None = None) -> Configuration:
    return parse_config(store.get(CONFIG_KEY), default=default)


def save_config_document(store: KeyValueStore, document: dict[str, Any]) -> None:
    store.put(CONFIG_KEY, _json_dumps(document))


def open_store(kind: str, *, data_dir: str, db_path: str) -> KeyValueStore:
    k = (kind or "").strip().lower()
    if k == "file":
        return FileStore(data_dir)
    if k == "sqlite":
        return SqliteStore(db_path)
    if k == "memory":
        return MemoryStore()
    raise ValueError(f"Unknown store kind {kind!r}; expected file, sqlite or memory")
