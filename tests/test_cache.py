"""Tests for the cross-pass metadata cache."""

from __future__ import annotations

import pytest

from query_doctor.cache import MetadataCache


class TestMetadataCache:
    def test_loader_called_once(self):
        cache = MetadataCache()
        calls = []

        def loader():
            calls.append(1)
            return 42

        assert cache.get("users", loader) == 42
        assert cache.get("users", loader) == 42
        assert len(calls) == 1
        assert "users" in cache
        assert len(cache) == 1

    def test_none_is_cached(self):
        cache = MetadataCache()
        cache.get("missing", lambda: None)
        assert cache.get("missing", lambda: pytest.fail("loader called twice")) is None

    def test_loader_error_not_cached(self):
        cache = MetadataCache()

        def failing():
            raise RuntimeError("connection lost")

        with pytest.raises(RuntimeError):
            cache.get("users", failing)
        assert "users" not in cache
        assert cache.get("users", lambda: 7) == 7

    def test_invalidate(self):
        cache = MetadataCache()
        cache.get("users", lambda: 1)
        cache.invalidate()
        assert len(cache) == 0
        assert cache.get("users", lambda: 2) == 2

    def test_invalidate_replaces_instead_of_clearing(self):
        cache = MetadataCache()
        cache.get("users", lambda: 1)
        before = cache._entries
        cache.invalidate()
        assert before == {"users": 1}
