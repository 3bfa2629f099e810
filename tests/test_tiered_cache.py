"""Tests for coverage_engine.cache (TieredCache, storage backends, layouts)."""

import json
from unittest.mock import AsyncMock

import pytest

from coverage_engine.cache import (
    TTL, CacheCategory, FileStorage, MemoryStorage, RedisStorage, TieredCache, build_storage,
)
from coverage_engine.cache.tiered_cache import iso_from_ms

from conftest import T0_MS, run


@pytest.fixture
def file_cache(tmp_path, clock):
    cache = TieredCache(FileStorage(tmp_path), clock=clock)
    run(cache.ensure_all())
    return cache


class TestFreshness:
    """age == TTL is a hit, TTL + 1 ms is a miss, for every category."""

    @pytest.mark.parametrize("category", list(CacheCategory))
    def test_exact_ttl_is_hit(self, file_cache, clock, category):
        assert run(file_cache.put(category, "AVGO", {"v": 1})) is True
        clock.advance(TTL[category] * 1000)
        entry = run(file_cache.get(category, "AVGO"))
        assert entry is not None
        assert entry.payload == {"v": 1}

    @pytest.mark.parametrize("category", list(CacheCategory))
    def test_one_ms_past_ttl_is_miss(self, file_cache, clock, category):
        run(file_cache.put(category, "AVGO", {"v": 1}))
        clock.advance(TTL[category] * 1000 + 1)
        assert run(file_cache.get(category, "AVGO")) is None

    def test_report_miss_on_day_31(self, file_cache, clock):
        run(file_cache.put(CacheCategory.REPORT, "AVGO", {"report": "memo"}))
        clock.advance(31 * 24 * 3600 * 1000)
        assert run(file_cache.get(CacheCategory.REPORT, "AVGO")) is None

    def test_portfolio_fresh_after_ten_minutes(self, file_cache, clock):
        run(file_cache.put(CacheCategory.PORTFOLIO_SNAPSHOT, "MOVERS_2026-10-16", {"gainers": []}))
        clock.advance(10 * 60 * 1000)
        assert run(file_cache.get(CacheCategory.PORTFOLIO_SNAPSHOT, "MOVERS_2026-10-16")) is not None

    def test_absent_key_is_miss(self, file_cache):
        assert run(file_cache.get(CacheCategory.SEC_FILING, "NOPE")) is None


class TestReadWrite:

    def test_roundtrip_preserves_payload(self, file_cache):
        payload = {"sections": {"business": "Semiconductors — and software ✓"}, "fiscalYear": 2025}
        run(file_cache.put(CacheCategory.SEC_FILING, "avgo", payload))
        entry = run(file_cache.get(CacheCategory.SEC_FILING, "AVGO"))
        assert entry.payload == payload
        assert entry.key == "AVGO"
        assert entry.created_at == T0_MS

    def test_overwrite_replaces_wholesale(self, file_cache, clock):
        run(file_cache.put(CacheCategory.REPORT, "AVGO", {"report": "old", "html": "<p>old</p>"}))
        clock.advance(1000)
        run(file_cache.put(CacheCategory.REPORT, "AVGO", {"report": "new"}))
        entry = run(file_cache.get(CacheCategory.REPORT, "AVGO"))
        assert entry.payload == {"report": "new"}
        assert entry.created_at == T0_MS + 1000

    def test_generated_at_is_iso_ms(self, file_cache):
        run(file_cache.put(CacheCategory.REPORT, "AVGO", {"report": "x"}))
        entry = run(file_cache.get(CacheCategory.REPORT, "AVGO"))
        assert entry.generated_at == iso_from_ms(T0_MS)
        assert entry.generated_at.endswith("Z")

    def test_corrupt_entry_is_miss(self, tmp_path, file_cache):
        path = FileStorage(tmp_path).path_for(CacheCategory.EARNINGS_TRANSCRIPT, "AVGO")
        path.write_text("{not json", encoding="utf-8")
        assert run(file_cache.get(CacheCategory.EARNINGS_TRANSCRIPT, "AVGO")) is None

    @pytest.mark.parametrize("stamp", ["1e400", "Infinity", "-Infinity", "NaN"])
    def test_non_finite_timestamp_is_miss(self, tmp_path, file_cache, stamp):
        path = FileStorage(tmp_path).path_for(CacheCategory.REPORT, "AVGO")
        path.write_text('{"ticker": "AVGO", "report": "x", "timestamp": %s}' % stamp, encoding="utf-8")
        assert run(file_cache.get(CacheCategory.REPORT, "AVGO")) is None

    def test_envelope_without_timestamp_is_miss(self, tmp_path, file_cache):
        path = FileStorage(tmp_path).path_for(CacheCategory.WEB_RESEARCH, "AVGO")
        path.write_text(json.dumps({"ticker": "AVGO", "data": {}}), encoding="utf-8")
        assert run(file_cache.get(CacheCategory.WEB_RESEARCH, "AVGO")) is None

    def test_corrupt_entry_recovers_on_next_put(self, tmp_path, file_cache):
        path = FileStorage(tmp_path).path_for(CacheCategory.REPORT, "AVGO")
        path.write_text("[]", encoding="utf-8")
        assert run(file_cache.get(CacheCategory.REPORT, "AVGO")) is None
        assert run(file_cache.put(CacheCategory.REPORT, "AVGO", {"report": "fresh"})) is True
        assert run(file_cache.get(CacheCategory.REPORT, "AVGO")).payload == {"report": "fresh"}

    def test_put_failure_returns_false(self, clock):
        storage = MemoryStorage()
        storage.write = AsyncMock(side_effect=OSError("disk full"))
        cache = TieredCache(storage, clock=clock)
        assert run(cache.put(CacheCategory.REPORT, "AVGO", {"report": "x"})) is False

    def test_flat_category_rejects_non_mapping(self, file_cache):
        assert run(file_cache.put(CacheCategory.REPORT, "AVGO", "just text")) is False

    def test_read_failure_is_miss(self, clock):
        storage = MemoryStorage()
        storage.read = AsyncMock(side_effect=PermissionError("denied"))
        cache = TieredCache(storage, clock=clock)
        assert run(cache.get(CacheCategory.REPORT, "AVGO")) is None


class TestCategoryIsolation:

    def test_same_key_different_categories(self, file_cache):
        run(file_cache.put(CacheCategory.SEC_FILING, "AVGO", {"src": "sec"}))
        run(file_cache.put(CacheCategory.WEB_RESEARCH, "AVGO", {"src": "web"}))
        assert run(file_cache.get(CacheCategory.SEC_FILING, "AVGO")).payload == {"src": "sec"}
        assert run(file_cache.get(CacheCategory.WEB_RESEARCH, "AVGO")).payload == {"src": "web"}

    def test_broken_category_does_not_block_others(self, tmp_path, clock):
        (tmp_path / "sec").write_text("a file where the directory should be", encoding="utf-8")
        cache = TieredCache(FileStorage(tmp_path), clock=clock)
        ready = run(cache.ensure_all())
        assert ready["sec-filing"] is False
        assert ready["report"] is True
        assert run(cache.put(CacheCategory.SEC_FILING, "AVGO", {"x": 1})) is False
        assert run(cache.put(CacheCategory.REPORT, "AVGO", {"report": "ok"})) is True
        assert run(cache.get(CacheCategory.REPORT, "AVGO")).payload == {"report": "ok"}
        assert cache.status()["unavailable"] == ["sec-filing"]

    def test_unavailable_category_never_touches_storage(self, clock):
        storage = MemoryStorage()

        async def ensure(category):
            if category is CacheCategory.SEC_FILING:
                raise OSError("no space left")

        storage.ensure = ensure
        storage.read   = AsyncMock(return_value=None)
        storage.write  = AsyncMock()
        cache = TieredCache(storage, clock=clock)
        run(cache.ensure_all())

        assert run(cache.get(CacheCategory.SEC_FILING, "AVGO")) is None
        assert run(cache.put(CacheCategory.SEC_FILING, "AVGO", {"x": 1})) is False
        storage.read.assert_not_called()
        storage.write.assert_not_called()

        assert run(cache.put(CacheCategory.REPORT, "AVGO", {"report": "ok"})) is True
        storage.write.assert_called_once()

    def test_category_recovers_after_successful_ensure(self, clock):
        storage = MemoryStorage()
        cache = TieredCache(storage, clock=clock)
        cache._unavailable.add(CacheCategory.WEB_RESEARCH)
        assert run(cache.put(CacheCategory.WEB_RESEARCH, "AVGO", {"research": "x"})) is False
        assert run(cache.ensure(CacheCategory.WEB_RESEARCH)) is True
        assert run(cache.put(CacheCategory.WEB_RESEARCH, "AVGO", {"research": "x"})) is True


class TestLayout:

    def test_paths(self, tmp_path):
        storage = FileStorage(tmp_path)
        assert storage.path_for(CacheCategory.REPORT, "AVGO") == tmp_path / "AVGO.json"
        assert storage.path_for(CacheCategory.SEC_FILING, "AVGO") == tmp_path / "sec" / "AVGO_10K.json"
        assert storage.path_for(CacheCategory.EARNINGS_TRANSCRIPT, "AVGO") == tmp_path / "earnings" / "AVGO_earnings.json"
        assert storage.path_for(CacheCategory.WEB_RESEARCH, "AVGO") == tmp_path / "websearch" / "AVGO_research.json"
        assert storage.path_for(CacheCategory.FINANCIAL_SNAPSHOT, "AVGO") == tmp_path / "alphavantage" / "AVGO_financials.json"
        assert storage.path_for(CacheCategory.PORTFOLIO_SNAPSHOT, "MOVERS_2026-10-16") == \
            tmp_path / "portfolio" / "MOVERS_2026-10-16.json"

    def test_report_envelope_is_flat(self, tmp_path, file_cache):
        run(file_cache.put(CacheCategory.REPORT, "avgo", {"report": "memo", "html": "<p>memo</p>"}))
        stored = json.loads((tmp_path / "AVGO.json").read_text(encoding="utf-8"))
        assert stored == {
            "ticker": "AVGO",
            "report": "memo",
            "html": "<p>memo</p>",
            "timestamp": T0_MS,
            "generatedAt": iso_from_ms(T0_MS),
        }

    def test_source_envelope_wraps_data(self, tmp_path, file_cache):
        run(file_cache.put(CacheCategory.FINANCIAL_SNAPSHOT, "AVGO", {"peRatio": 31.2}))
        stored = json.loads((tmp_path / "alphavantage" / "AVGO_financials.json").read_text(encoding="utf-8"))
        assert stored == {"ticker": "AVGO", "data": {"peRatio": 31.2}, "cachedAt": T0_MS}

    def test_portfolio_envelope_uses_key_field(self, tmp_path, file_cache):
        run(file_cache.put(CacheCategory.PORTFOLIO_SNAPSHOT, "MOVERS_2026-10-16", [1, 2]))
        stored = json.loads((tmp_path / "portfolio" / "MOVERS_2026-10-16.json").read_text(encoding="utf-8"))
        assert stored == {"key": "MOVERS_2026-10-16", "data": [1, 2], "timestamp": T0_MS}

    def test_no_temp_files_left_behind(self, tmp_path, file_cache):
        run(file_cache.put(CacheCategory.SEC_FILING, "AVGO", {"x": 1}))
        assert [p.name for p in (tmp_path / "sec").iterdir()] == ["AVGO_10K.json"]


class TestBackends:

    def test_memory_backend(self, clock):
        cache = TieredCache(MemoryStorage(), clock=clock)
        run(cache.put(CacheCategory.WEB_RESEARCH, "AVGO", {"research": "notes"}))
        assert run(cache.get(CacheCategory.WEB_RESEARCH, "AVGO")).payload == {"research": "notes"}
        assert run(cache.get(CacheCategory.SEC_FILING, "AVGO")) is None
        assert cache.status()["backend"] == "memory"

    def test_redis_key_mirrors_file_layout(self):
        assert RedisStorage.redis_key(CacheCategory.SEC_FILING, "AVGO") == "cache:sec:AVGO_10K.json"
        assert RedisStorage.redis_key(CacheCategory.REPORT, "AVGO") == "cache:root:AVGO.json"

    def test_redis_backend_with_client(self, clock):
        store = {}
        client = AsyncMock()
        client.set.side_effect = lambda k, v: store.__setitem__(k, v)
        client.get.side_effect = lambda k: store.get(k)
        cache = TieredCache(RedisStorage("redis://unused", client=client), clock=clock)

        assert run(cache.put(CacheCategory.REPORT, "AVGO", {"report": "memo"})) is True
        assert "cache:root:AVGO.json" in store
        assert run(cache.get(CacheCategory.REPORT, "AVGO")).payload == {"report": "memo"}

    def test_build_storage(self, tmp_path):
        assert isinstance(build_storage("memory"), MemoryStorage)
        assert isinstance(build_storage("redis", redis_url="redis://localhost:6379"), RedisStorage)
        assert isinstance(build_storage("file", tmp_path), FileStorage)
        assert isinstance(build_storage("unknown", tmp_path), FileStorage)
