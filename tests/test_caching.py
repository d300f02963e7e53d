import redis

from utils.caching_utils import get_or_set_cache, invalidate_cache
from utils.redis_client import redis_client


class BrokenRedis:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise redis.ConnectionError("connection refused")

        return fail


def test_cache_aside_reads_through_once(fake_redis):
    calls = []

    def fetch():
        calls.append(1)
        return {"orders": 3}

    assert get_or_set_cache(key="stats", ttl=60, fetch_fn=fetch) == {"orders": 3}
    assert get_or_set_cache(key="stats", ttl=60, fetch_fn=fetch) == {"orders": 3}
    assert len(calls) == 1
    assert "test:stats" in fake_redis.store


def test_undecodable_entry_is_refetched(fake_redis):
    fake_redis.store["test:stats"] = "{not json"

    assert get_or_set_cache(key="stats", ttl=60, fetch_fn=lambda: [1, 2]) == [1, 2]
    assert fake_redis.store["test:stats"] == "[1, 2]"


def test_invalidate_keys_and_patterns(fake_redis):
    for key in ("user_orders:1", "orders:analytics:7d", "orders:analytics:30d", "payment_settings:mode"):
        redis_client.setex(key, 60, "x")

    invalidate_cache(keys=["user_orders:1"], patterns=["orders:analytics:*"])

    assert list(fake_redis.store) == ["test:payment_settings:mode"]


def test_redis_outage_falls_back_to_source(monkeypatch):
    monkeypatch.setattr(redis_client, "client", BrokenRedis())

    assert redis_client.ping() is False
    assert get_or_set_cache(key="stats", ttl=60, fetch_fn=lambda: {"ok": True}) == {"ok": True}
    assert redis_client.delete("stats") == 0
    assert redis_client.delete_pattern("orders:*") == 0
