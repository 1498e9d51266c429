from __future__ import annotations

import asyncio

import pytest

from saved_items.hydrator import Hydrator

from .conftest import FakeCatalog, make_record


@pytest.mark.asyncio
async def test_hydrates_and_backfills_cache(cache):
    catalog = FakeCatalog({"jp:def": make_record("jp:def"), "us:ghi": make_record("us:ghi")})
    hydrator = Hydrator(catalog, cache)

    resolved = await hydrator.hydrate(["jp:def", "us:ghi"])

    assert set(resolved) == {"jp:def", "us:ghi"}
    assert set(cache.read_all()) == {"jp:def", "us:ghi"}


@pytest.mark.asyncio
async def test_one_failure_does_not_abort_others(cache):
    catalog = FakeCatalog({"us:ok": make_record("us:ok")})
    hydrator = Hydrator(catalog, cache)

    result = await hydrator.hydrate_detailed(["us:gone", "us:ok", "bogus-key"])

    assert list(result.records) == ["us:ok"]
    assert result.failed == ["us:gone", "bogus-key"]
    assert set(cache.read_all()) == {"us:ok"}


@pytest.mark.asyncio
async def test_empty_input_touches_nothing(local_medium, cache):
    assert await Hydrator(FakeCatalog(), cache).hydrate([]) == {}
    assert local_medium.get("saved_record_cache_v1") is None


@pytest.mark.asyncio
async def test_fetches_run_concurrently_up_to_limit(cache):
    active = 0
    peak = 0

    class SlowCatalog:
        async def fetch_record(self, key):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return make_record(key)

    keys = [f"us:{i}" for i in range(6)]
    resolved = await Hydrator(SlowCatalog(), cache, max_concurrency=3).hydrate(keys)

    assert list(resolved) == keys
    assert peak == 3
