"""Bearer token cache expiry and size bound."""

from app.modules.auth.service import TokenCache


def test_cached_user_returned_until_expiry():
    cache = TokenCache(ttl_seconds=60, max_size=10)
    cache.set("token-a", {"id": "u1"})

    assert cache.get("token-a") == {"id": "u1"}
    assert cache.get("token-b") is None


def test_full_cache_drops_expired_entries_before_refusing():
    cache = TokenCache(ttl_seconds=0, max_size=1)
    cache.set("token-a", {"id": "u1"})
    cache.ttl_seconds = 60

    cache.set("token-b", {"id": "u2"})

    assert cache.get("token-b") == {"id": "u2"}


def test_full_cache_keeps_live_entries():
    cache = TokenCache(ttl_seconds=60, max_size=1)
    cache.set("token-a", {"id": "u1"})
    cache.set("token-b", {"id": "u2"})

    assert cache.get("token-a") == {"id": "u1"}
    assert cache.get("token-b") is None
