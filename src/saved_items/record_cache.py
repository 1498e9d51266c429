from __future__ import annotations

import json
import logging
from typing import Iterable

from .models import SavedKey, SavedRecord
from .storage import BlobStore

logger = logging.getLogger(__name__)


class RecordCache:
    """Saved key to record snapshots, kept in the larger local medium.

    Entries are only removed when their key leaves the key store, so the
    cache stays bounded by the key store's budget.
    """

    def __init__(self, medium: BlobStore, name: str = "saved_record_cache_v1") -> None:
        self._medium = medium
        self._name = name

    def read_all(self) -> dict[SavedKey, SavedRecord]:
        raw = self._medium.get(self._name)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Discarding malformed record cache blob")
            return {}
        if not isinstance(data, dict):
            return {}
        records: dict[SavedKey, SavedRecord] = {}
        for key, payload in data.items():
            record = SavedRecord.from_dict(payload)
            if record is not None:
                records[key] = record
        return records

    def get(self, key: SavedKey) -> SavedRecord | None:
        return self.read_all().get(key)

    def put(self, key: SavedKey, record: SavedRecord) -> None:
        self.put_many({key: record})

    def put_many(self, records: dict[SavedKey, SavedRecord]) -> None:
        if not records:
            return
        current = self.read_all()
        current.update(records)
        self._write(current)

    def delete(self, key: SavedKey) -> None:
        self.delete_many([key])

    def delete_many(self, keys: Iterable[SavedKey]) -> None:
        current = self.read_all()
        removed = [key for key in keys if current.pop(key, None) is not None]
        if removed:
            self._write(current)

    def _write(self, records: dict[SavedKey, SavedRecord]) -> None:
        payload = {key: record.to_dict() for key, record in records.items()}
        self._medium.set(self._name, json.dumps(payload, ensure_ascii=False))
