"""Shared fixtures: in-memory media and fakes for the catalog and saved-set API."""

from __future__ import annotations

import pytest

from saved_items.errors import CatalogUnavailable, RemoteUnavailable
from saved_items.hydrator import Hydrator
from saved_items.key_store import KeyStore
from saved_items.legacy import LegacyImporter
from saved_items.models import SavedRecord, parse_key
from saved_items.record_cache import RecordCache
from saved_items.service import SavedItemsService
from saved_items.storage import MemoryBlobStore


def make_record(key: str, published: str | None = None, title: str | None = None) -> SavedRecord:
    region, item_id = parse_key(key)
    return SavedRecord(
        item_id=item_id,
        region=region,
        title=title or f"Topic {item_id}",
        category="world",
        last_source_published_at=published,
    )


class FakeCatalog:
    def __init__(self, records: dict[str, SavedRecord] | None = None) -> None:
        self.records = dict(records or {})
        self.requested: list[str] = []

    async def fetch_record(self, key: str) -> SavedRecord:
        self.requested.append(key)
        if key not in self.records:
            raise CatalogUnavailable(key, "HTTP 404")
        return self.records[key]


class FakeRemote:
    def __init__(self, keys: list[str] | None = None) -> None:
        self.keys = list(keys or [])
        self.calls: list[tuple] = []
        self.fail: set[str] = set()

    def _check(self, name: str) -> None:
        if name in self.fail:
            raise RemoteUnavailable(f"{name}: HTTP 503", status=503)

    async def list_keys(self) -> list[str]:
        self.calls.append(("list",))
        self._check("list")
        return list(self.keys)

    async def import_keys(self, keys: list[str]) -> list[str]:
        self.calls.append(("import", list(keys)))
        self._check("import")
        for key in keys:
            if key not in self.keys:
                self.keys.append(key)
        return list(self.keys)

    async def add_key(self, key: str) -> None:
        self.calls.append(("add", key))
        self._check("add")
        if key not in self.keys:
            self.keys.append(key)

    async def remove_key(self, key: str) -> None:
        self.calls.append(("remove", key))
        self._check("remove")
        if key in self.keys:
            self.keys.remove(key)


@pytest.fixture
def cookie_medium() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def local_medium() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def cache(local_medium: MemoryBlobStore) -> RecordCache:
    return RecordCache(local_medium)


@pytest.fixture
def key_store(cookie_medium: MemoryBlobStore, cache: RecordCache) -> KeyStore:
    return KeyStore(cookie_medium, cache)


@pytest.fixture
def legacy(local_medium: MemoryBlobStore, key_store: KeyStore, cache: RecordCache) -> LegacyImporter:
    return LegacyImporter(local_medium, key_store, cache)


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def token() -> dict[str, str | None]:
    return {"value": None}


@pytest.fixture
def service(key_store, cache, legacy, catalog, remote, token) -> SavedItemsService:
    return SavedItemsService(
        key_store,
        cache,
        legacy,
        Hydrator(catalog, cache),
        remote=remote,
        token_provider=lambda: token["value"],
    )
