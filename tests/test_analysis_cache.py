import json
from datetime import datetime, timedelta, timezone

import pytest

from corpintel.services import analysis_cache
from corpintel.services.analysis_cache import (
    CACHE_RETENTION_DAYS,
    cache_info,
    clear_cached_analysis,
    get_cache_stats,
    get_cached_analysis,
    is_fresh,
    normalize_company_name,
    set_cached_analysis,
)


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0


@pytest.fixture
def fake_redis(monkeypatch):
    r = FakeRedis()
    monkeypatch.setattr(analysis_cache, "_redis_client", r)
    return r


def _iso(dt):
    return dt.isoformat()


class TestCacheRoundTrip:
    """Store and load analysis documents"""

    def test_set_and_get(self, fake_redis):
        assert set_cached_analysis(" Acme Corp ", {"summary": "hi"}, provider="gemini", analyzed_by="ana@example.com")
        entry = get_cached_analysis("acme   corp")
        assert entry["data"] == {"summary": "hi"}
        assert entry["company_name"] == "Acme Corp"
        assert entry["provider"] == "gemini"
        assert entry["analyzed_by"] == "ana@example.com"
        assert list(fake_redis.store) == ["analysis:acme corp"]
        assert fake_redis.ttls["analysis:acme corp"] == CACHE_RETENTION_DAYS * 86400

    def test_large_documents_are_compressed(self, fake_redis):
        data = {"summary": "x" * 10000}
        set_cached_analysis("Acme", data)
        assert fake_redis.store["analysis:acme"].startswith("gzip:")
        assert get_cached_analysis("Acme")["data"] == data

    def test_miss_and_clear(self, fake_redis):
        assert get_cached_analysis("Nobody") is None
        set_cached_analysis("Acme", {})
        assert clear_cached_analysis("ACME")
        assert get_cached_analysis("Acme") is None

    def test_corrupt_entry_is_a_miss(self, fake_redis):
        fake_redis.store["analysis:acme"] = "{not json"
        assert get_cached_analysis("Acme") is None

    def test_blank_name(self, fake_redis):
        assert get_cached_analysis("   ") is None
        assert normalize_company_name("  Goldman   Sachs ") == "goldman sachs"


class TestFreshness:
    """Stale vs fresh entries"""

    def test_is_fresh(self):
        now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert is_fresh({"analyzed_at": _iso(now - timedelta(hours=23))}, now)
        assert not is_fresh({"analyzed_at": _iso(now - timedelta(hours=25))}, now)
        assert not is_fresh({"analyzed_at": "garbage"}, now)
        assert not is_fresh(None, now)

    def test_naive_timestamps_are_utc(self):
        now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert is_fresh({"analyzed_at": "2024-06-01T11:00:00"}, now)

    def test_cache_info(self, fake_redis):
        analyzed = datetime(2024, 6, 1, 0, 0, tzinfo=timezone.utc)
        fake_redis.store["analysis:acme"] = json.dumps({
            "company_name": "Acme", "data": {}, "provider": "openai", "analyzed_by": None,
            "analyzed_at": _iso(analyzed),
        })
        info = cache_info("Acme", now=analyzed + timedelta(hours=30))
        assert info == {
            "exists": True,
            "cache_info": {
                "analyzed_at": _iso(analyzed),
                "analyzed_by": None,
                "provider": "openai",
                "age_minutes": 30 * 60,
                "is_stale": True,
            },
        }
        assert cache_info("Other") == {"exists": False}


class TestStats:
    """Hit / miss counters"""

    def test_counts(self, fake_redis, monkeypatch):
        monkeypatch.setattr(analysis_cache, "_cache_stats", {"hits": 0, "misses": 0, "errors": 0})
        set_cached_analysis("Acme", {})
        get_cached_analysis("Acme")
        get_cached_analysis("Acme")
        get_cached_analysis("Other")
        stats = get_cache_stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["total_requests"] == 3
        assert stats["hit_rate_percent"] == pytest.approx(66.67)


class TestRedisUnavailable:
    """Redis down behaves like an empty cache"""

    def test_degrades(self, monkeypatch):
        monkeypatch.setattr(analysis_cache, "get_redis", lambda: None)
        assert get_cached_analysis("Acme") is None
        assert set_cached_analysis("Acme", {}) is False
        assert cache_info("Acme") == {"exists": False}
        assert clear_cached_analysis("Acme") is False
