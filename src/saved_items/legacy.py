from __future__ import annotations

import json
import logging

from .key_store import KeyStore
from .models import SavedKey, SavedRecord
from .record_cache import RecordCache
from .storage import BlobStore

logger = logging.getLogger(__name__)


class LegacyImporter:
    """Moves the old unbounded array of records into the key store and cache."""

    def __init__(
        self,
        medium: BlobStore,
        key_store: KeyStore,
        cache: RecordCache,
        name: str = "saved_items",
    ) -> None:
        self._medium = medium
        self._key_store = key_store
        self._cache = cache
        self._name = name

    def migrate(self) -> int:
        raw = self._medium.get(self._name)
        if raw is None:
            return 0
        try:
            legacy = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Dropping unreadable legacy saved items blob")
            self._medium.delete(self._name)
            return 0
        if not isinstance(legacy, list) or not legacy:
            self._medium.delete(self._name)
            return 0

        records: dict[SavedKey, SavedRecord] = {}
        for payload in legacy:
            record = SavedRecord.from_dict(payload)
            if record is None:
                continue
            records[record.key] = record

        kept = self._key_store.write([*self._key_store.read(), *records])
        survivors = set(kept)
        self._cache.put_many({key: rec for key, rec in records.items() if key in survivors})
        self._medium.delete(self._name)
        logger.info("Migrated %d legacy saved items (%d kept)", len(records), len(survivors & set(records)))
        return len(records)
