from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Protocol

from movie_wizard.core.config import default_data_dir
from movie_wizard.utils.logging import get_logger

logger = get_logger(__name__)

HISTORY_KEY = "movieWizardHistory"
MAX_HISTORY_ENTRIES = 5


@dataclass(frozen=True)
class HistoryEntry:
    input: str
    output: str
    timestamp: int  # epoch millis

    @classmethod
    def from_raw(cls, raw: Any) -> HistoryEntry | None:
        """Return an entry for a well-formed record, else None."""
        if not isinstance(raw, dict):
            return None

        inp = raw.get("input")
        out = raw.get("output")
        ts = raw.get("timestamp")
        if not isinstance(inp, str) or not isinstance(out, str):
            return None
        # bool is an int subclass; reject it explicitly.
        if not isinstance(ts, int) or isinstance(ts, bool):
            return None
        return cls(input=inp, output=out, timestamp=ts)


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, items: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage:
    """String key/value storage kept in a single JSON object on disk.

    The file is created on first write, never on read. Writes go through a
    sibling temp file and ``os.replace`` so a crash never leaves half a file.
    An unreadable file behaves like an empty one.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = Lock()

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError, RecursionError) as e:
            logger.warning("Ignoring unreadable storage file %s: %s", self._path, e)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {k: v for k, v in raw.items() if isinstance(k, str) and isinstance(v, str)}

    def _write_all(self, items: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            tmp.write_text(json.dumps(items, indent=2, sort_keys=True) + "\n", encoding="utf-8")
            os.replace(tmp, self._path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = self._read_all()
            items[key] = value
            self._write_all(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._read_all()
            if key not in items:
                return
            del items[key]
            self._write_all(items)


def default_client_storage_path() -> Path:
    return default_data_dir() / "client_storage.json"


class HistoryStore:
    """The most recent recommendations, persisted as a JSON array.

    Holds at most ``MAX_HISTORY_ENTRIES`` entries, oldest first. Nothing is
    written until the first append.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        key: str = HISTORY_KEY,
        max_entries: int = MAX_HISTORY_ENTRIES,
    ) -> None:
        self._storage = storage
        self._key = key
        self._max_entries = max_entries
        self._lock = Lock()
        self._last_appended: HistoryEntry | None = None
        self._entries: list[HistoryEntry] = self.load()

    @property
    def entries(self) -> list[HistoryEntry]:
        with self._lock:
            return list(self._entries)

    def load(self) -> list[HistoryEntry]:
        """Read persisted history; absent or malformed data yields []."""
        raw = self._storage.get_item(self._key)
        if raw is None:
            return []

        try:
            payload = json.loads(raw)
        except (ValueError, RecursionError):
            logger.warning("Persisted history is not valid JSON; starting empty")
            return []

        if not isinstance(payload, list):
            logger.warning("Persisted history is not a list; starting empty")
            return []

        entries = [e for e in (HistoryEntry.from_raw(item) for item in payload) if e is not None]
        dropped = len(payload) - len(entries)
        if dropped:
            logger.warning("Dropped %d malformed history entries", dropped)

        return entries[-self._max_entries:]

    def append(self, entry: HistoryEntry) -> list[HistoryEntry]:
        with self._lock:
            # Re-rendering the same result must not record it twice.
            if entry is self._last_appended:
                return list(self._entries)

            entries = [*self._entries, entry][-self._max_entries:]
            # Memory only changes once the write has gone through.
            self._storage.set_item(self._key, json.dumps([asdict(e) for e in entries]))
            self._entries = entries
            self._last_appended = entry
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries = []
            self._last_appended = None
            self._storage.remove_item(self._key)
