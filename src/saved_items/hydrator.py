from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

from .models import SavedKey, SavedRecord
from .record_cache import RecordCache

logger = logging.getLogger(__name__)


class RecordFetcher(Protocol):
    async def fetch_record(self, key: SavedKey) -> SavedRecord: ...


@dataclass(slots=True)
class HydrationResult:
    records: dict[SavedKey, SavedRecord] = field(default_factory=dict)
    failed: list[SavedKey] = field(default_factory=list)


class Hydrator:
    """Resolves keys missing from the record cache via the catalog.

    Every key is fetched in its own task; all tasks settle before the
    successes are written back in one batch. A failed key is left for the
    next load.
    """

    def __init__(self, catalog: RecordFetcher, cache: RecordCache, max_concurrency: int = 8) -> None:
        self._catalog = catalog
        self._cache = cache
        self._max_concurrency = max(1, max_concurrency)

    async def hydrate(self, keys: list[SavedKey]) -> dict[SavedKey, SavedRecord]:
        return (await self.hydrate_detailed(keys)).records

    async def hydrate_detailed(self, keys: list[SavedKey]) -> HydrationResult:
        result = HydrationResult()
        if not keys:
            return result

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _fetch(key: SavedKey) -> SavedRecord:
            async with semaphore:
                return await self._catalog.fetch_record(key)

        outcomes = await asyncio.gather(*(_fetch(key) for key in keys), return_exceptions=True)
        for key, outcome in zip(keys, outcomes):
            if isinstance(outcome, SavedRecord):
                result.records[key] = outcome
            elif isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                # cancellation
                raise outcome
            else:
                logger.warning("Could not hydrate %s: %s", key, outcome)
                result.failed.append(key)

        self._cache.put_many(result.records)
        return result
