from __future__ import annotations

import json
import logging
from typing import Iterable
from urllib.parse import quote, unquote

from .models import SavedKey, SavedRecord
from .record_cache import RecordCache
from .storage import BlobStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 3500
DEFAULT_MAX_AGE = 60 * 60 * 24 * 365

# characters encodeURIComponent leaves alone
_URI_SAFE = "-_.!~*'()"


def encode_keys(keys: list[SavedKey]) -> str:
    return quote(json.dumps(keys, separators=(",", ":"), ensure_ascii=False), safe=_URI_SAFE)


def dedupe(keys: Iterable[SavedKey]) -> list[SavedKey]:
    seen: set[str] = set()
    unique: list[SavedKey] = []
    for key in keys:
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(key)
    return unique


class KeyStore:
    """Ordered saved keys in the small, request-attached medium.

    Oldest keys are at the front. Writes over ``max_bytes`` drop keys from
    the front until the blob fits, but never below one key.
    """

    def __init__(
        self,
        medium: BlobStore,
        cache: RecordCache,
        name: str = "saved_keys_v1",
        max_bytes: int = DEFAULT_MAX_BYTES,
        max_age: int = DEFAULT_MAX_AGE,
    ) -> None:
        self._medium = medium
        self._cache = cache
        self._name = name
        self.max_bytes = max_bytes
        self.max_age = max_age

    def read(self) -> list[SavedKey]:
        raw = self._medium.get(self._name)
        if not raw:
            return []
        try:
            data = json.loads(unquote(raw))
        except json.JSONDecodeError:
            logger.debug("Discarding malformed saved-keys blob")
            return []
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, str) and item]

    def write(self, keys: Iterable[SavedKey]) -> list[SavedKey]:
        unique = dedupe(keys)
        start = self._fit_start(unique)
        trimmed = unique[start:]
        self._medium.set(self._name, encode_keys(trimmed), max_age=self.max_age)
        if start:
            logger.info("Saved keys over %d bytes, dropped %d oldest", self.max_bytes, start)
            self._cache.delete_many(unique[:start])
        return trimmed

    def _fit_start(self, keys: list[SavedKey]) -> int:
        """Index of the oldest key that still fits, scanning newest first."""
        if not keys:
            return 0
        # encoded "[" and "]" are 3 chars each, so is each encoded ","
        size = 6 + _encoded_item_size(keys[-1])
        start = len(keys) - 1
        while start > 0:
            candidate = size + 3 + _encoded_item_size(keys[start - 1])
            if candidate > self.max_bytes:
                break
            size = candidate
            start -= 1
        while start < len(keys) - 1 and self.encoded_size(keys[start:]) > self.max_bytes:
            start += 1
        return start

    def contains(self, key: SavedKey) -> bool:
        return key in self.read()

    def toggle(self, key: SavedKey, record: SavedRecord | None = None) -> bool:
        keys = self.read()
        if key in keys:
            self.write([item for item in keys if item != key])
            self._cache.delete(key)
            return False
        self.write([*keys, key])
        if record is not None:
            self._cache.put(key, record)
        return True

    def remove(self, key: SavedKey) -> None:
        keys = self.read()
        if key in keys:
            self.write([item for item in keys if item != key])
        self._cache.delete(key)

    @staticmethod
    def encoded_size(keys: list[SavedKey]) -> int:
        return len(encode_keys(keys))


def _encoded_item_size(key: SavedKey) -> int:
    return len(quote(json.dumps(key, ensure_ascii=False), safe=_URI_SAFE))
