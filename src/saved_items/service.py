from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from .catalog import CatalogClient
from .config import AppConfig
from .errors import RemoteUnavailable
from .hydrator import Hydrator
from .key_store import KeyStore, dedupe
from .legacy import LegacyImporter
from .models import SavedKey, SavedRecord, build_key, sort_by_recency
from .record_cache import RecordCache
from .remote import RemoteSavedSetClient
from .storage import BlobStore, FileBlobStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ToggleResult:
    saved: bool


@dataclass(slots=True)
class LoadSummary:
    authenticated: bool = False
    migrated: int = 0
    local_keys: int = 0
    server_keys: int = 0
    imported: int = 0
    hydrated: int = 0
    failed: list[SavedKey] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class SavedItemsService:
    """Produces the saved list and applies save/unsave actions.

    Each ``load_saved_items`` call recomputes everything from the two local
    stores and, when a token is present, the remote saved set:

    1. migrate the legacy blob (no-op after the first run)
    2. read local keys
    3. if authenticated, union with the server set, importing local extras,
       and persist the merged keys
    4. hydrate keys with no cached record
    5. return records newest first

    Remote failures fall back to local-only data for that load and are
    recorded on ``last_summary`` instead of being raised.
    """

    def __init__(
        self,
        key_store: KeyStore,
        cache: RecordCache,
        legacy: LegacyImporter,
        hydrator: Hydrator,
        remote: RemoteSavedSetClient | None = None,
        token_provider: Callable[[], str | None] = lambda: None,
    ) -> None:
        self.key_store = key_store
        self.cache = cache
        self.legacy = legacy
        self.hydrator = hydrator
        self.remote = remote
        self._token_provider = token_provider
        self.last_summary = LoadSummary()

    @property
    def authenticated(self) -> bool:
        return self.remote is not None and bool(self._token_provider())

    async def load_saved_items(self) -> list[SavedRecord]:
        summary = LoadSummary(authenticated=self.authenticated)
        self.last_summary = summary

        summary.migrated = self.legacy.migrate()
        local_keys = self.key_store.read()
        summary.local_keys = len(local_keys)

        final_keys = local_keys
        if summary.authenticated:
            final_keys = await self._merge_with_server(local_keys, summary)

        cached_records = self.cache.read_all()
        missing = [key for key in final_keys if key not in cached_records]
        hydration = await self.hydrator.hydrate_detailed(missing)
        summary.hydrated = len(hydration.records)
        summary.failed = hydration.failed

        records: list[SavedRecord] = []
        for key in final_keys:
            record = cached_records.get(key) or hydration.records.get(key)
            if record is not None:
                records.append(record)
        return sort_by_recency(records)

    async def _merge_with_server(self, local_keys: list[SavedKey], summary: LoadSummary) -> list[SavedKey]:
        if self.remote is None:
            return local_keys
        try:
            server_keys = await self.remote.list_keys()
        except RemoteUnavailable as exc:
            logger.warning("Saved-set list failed, using local keys only: %s", exc)
            summary.errors.append(f"list: {exc}")
            return local_keys
        summary.server_keys = len(server_keys)

        server_set = set(server_keys)
        missing_on_server = [key for key in local_keys if key not in server_set]
        if missing_on_server:
            try:
                authoritative = await self.remote.import_keys(missing_on_server)
                summary.imported = len(missing_on_server)
            except RemoteUnavailable as exc:
                logger.warning("Saved-set import of %d keys failed: %s", len(missing_on_server), exc)
                summary.errors.append(f"import: {exc}")
                authoritative = server_keys
            merged = dedupe([*authoritative, *local_keys])
        else:
            merged = dedupe([*server_keys, *local_keys])

        return self.key_store.write(merged)

    def is_saved(self, region: str, item_id: str) -> bool:
        return self.key_store.contains(build_key(region, item_id))

    def toggle_saved(self, record: SavedRecord) -> ToggleResult:
        # fold in any legacy array first
        self.legacy.migrate()
        return ToggleResult(saved=self.key_store.toggle(record.key, record))

    async def toggle_saved_synced(self, record: SavedRecord) -> ToggleResult:
        result = self.toggle_saved(record)
        if self.remote is None or not self.authenticated:
            return result
        try:
            if result.saved:
                await self.remote.add_key(record.key)
            else:
                await self.remote.remove_key(record.key)
        except RemoteUnavailable as exc:
            logger.warning("Saved-set sync for %s failed: %s", record.key, exc)
        return result


def build_service(
    config: AppConfig,
    cookie_medium: BlobStore | None = None,
    local_medium: BlobStore | None = None,
) -> SavedItemsService:
    store = config.store
    cookie_medium = cookie_medium or FileBlobStore(store.cookie_path)
    local_medium = local_medium or FileBlobStore(store.local_path)

    cache = RecordCache(local_medium, name=store.cache_blob)
    key_store = KeyStore(
        cookie_medium,
        cache,
        name=store.keys_blob,
        max_bytes=store.max_key_bytes,
        max_age=store.key_max_age_seconds,
    )
    legacy = LegacyImporter(local_medium, key_store, cache, name=store.legacy_blob)
    hydrator = Hydrator(CatalogClient(config), cache, max_concurrency=config.catalog.max_concurrency)

    def token_provider() -> str | None:
        return config.remote.token

    remote = RemoteSavedSetClient(config, token_provider)
    return SavedItemsService(key_store, cache, legacy, hydrator, remote=remote, token_provider=token_provider)
