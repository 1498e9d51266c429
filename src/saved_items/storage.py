from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    """Whole-blob client storage scoped to one origin."""

    def get(self, name: str) -> str | None: ...

    def set(self, name: str, value: str, max_age: int | None = None) -> None: ...

    def delete(self, name: str) -> None: ...


class MemoryBlobStore:
    def __init__(self, clock=time.time) -> None:
        self._entries: dict[str, tuple[str, float | None]] = {}
        self._clock = clock

    def get(self, name: str) -> str | None:
        entry = self._entries.get(name)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[name]
            return None
        return value

    def set(self, name: str, value: str, max_age: int | None = None) -> None:
        expires_at = self._clock() + max_age if max_age is not None else None
        self._entries[name] = (value, expires_at)

    def delete(self, name: str) -> None:
        self._entries.pop(name, None)


class FileBlobStore:
    """JSON file of ``{name: {"value": ..., "expires_at": ...}}`` entries."""

    def __init__(self, path: Path, clock=time.time) -> None:
        self.path = path
        self._clock = clock

    def get(self, name: str) -> str | None:
        entry = self._load().get(name)
        if not isinstance(entry, dict):
            return None
        value = entry.get("value")
        if not isinstance(value, str):
            return None
        expires_at = entry.get("expires_at")
        if isinstance(expires_at, (int, float)) and expires_at <= self._clock():
            return None
        return value

    def set(self, name: str, value: str, max_age: int | None = None) -> None:
        entries = self._load()
        expires_at = self._clock() + max_age if max_age is not None else None
        entries[name] = {"value": value, "expires_at": expires_at}
        self._save(entries)

    def delete(self, name: str) -> None:
        entries = self._load()
        if name in entries:
            del entries[name]
            self._save(entries)

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug("Ignoring unreadable blob store %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, entries: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(entries, indent=2, sort_keys=True))
        os.replace(tmp_path, self.path)
