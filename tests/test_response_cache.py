"""
Tests for the catalog response cache.
"""

import time
from unittest.mock import patch

import pytest

from vibe_dnd.rulebooks.cache import MAX_TTL, ResponseCache

URL = "https://api.open5e.com/v2/classes/?limit=100"


class TestResponseCacheBasics:
    """Test store / get behavior."""

    def test_store_and_get(self):
        cache = ResponseCache(ttl=60)
        cache.store(URL, {"results": [{"key": "srd_wizard"}]})

        assert cache.get(URL) == {"results": [{"key": "srd_wizard"}]}
        assert cache.size == 1

    def test_miss_returns_none(self):
        cache = ResponseCache(ttl=60)
        assert cache.get(URL) is None

    def test_returned_payload_is_a_copy(self):
        cache = ResponseCache(ttl=60)
        payload = {"results": []}
        cache.store(URL, payload)

        payload["results"].append("mutated")
        cache.get(URL)["results"].append("mutated again")

        assert cache.get(URL) == {"results": []}

    def test_clear(self):
        cache = ResponseCache(ttl=60)
        cache.store(URL, {})
        cache.clear()
        assert cache.size == 0


class TestResponseCacheTTL:
    """Test expiry and TTL bounds."""

    def test_default_ttl_is_one_day(self):
        assert ResponseCache().ttl == MAX_TTL == 86400

    @pytest.mark.parametrize("ttl", [0, -1, MAX_TTL + 1])
    def test_invalid_ttl_rejected(self, ttl):
        with pytest.raises(ValueError):
            ResponseCache(ttl=ttl)

    def test_entry_expires(self):
        cache = ResponseCache(ttl=10)
        now = time.time()
        with patch("vibe_dnd.rulebooks.cache.time.time", return_value=now):
            cache.store(URL, {"results": []})
        with patch("vibe_dnd.rulebooks.cache.time.time", return_value=now + 10):
            assert cache.get(URL) is None

        assert cache.size == 0
        assert cache.get_stats().expired_count == 1

    def test_entry_fresh_before_ttl(self):
        cache = ResponseCache(ttl=10)
        now = time.time()
        with patch("vibe_dnd.rulebooks.cache.time.time", return_value=now):
            cache.store(URL, {"results": []})
        with patch("vibe_dnd.rulebooks.cache.time.time", return_value=now + 9):
            assert cache.get(URL) == {"results": []}


class TestResponseCacheStats:
    """Test hit / miss accounting."""

    def test_stats(self):
        cache = ResponseCache(ttl=60)
        cache.store(URL, {})
        cache.get(URL)
        cache.get(URL)
        cache.get("https://api.open5e.com/v2/species/?limit=100")

        stats = cache.get_stats()
        assert stats.total_entries == 1
        assert stats.hit_count == 2
        assert stats.miss_count == 1
        assert stats.hit_rate == pytest.approx(2 / 3)

    def test_empty_stats(self):
        assert ResponseCache(ttl=60).get_stats().hit_rate == 0.0
