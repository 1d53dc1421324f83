#!/usr/bin/env python3
"""
Tests for the bounded verse cache.
"""

from collections import OrderedDict
from unittest.mock import Mock

import pytest

from verse_canvas.verse_cache import VerseCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_get_and_set():
    cache = VerseCache(max_entries=10, ttl_seconds=0)
    cache.set(('language', 'en'), {'code': 'r1/lp-e'})

    assert cache.get(('language', 'en')) == {'code': 'r1/lp-e'}
    assert cache.get(('language', 'fr')) is None
    assert cache.get(('language', 'fr'), 'missing') == 'missing'
    assert ('language', 'en') in cache
    assert len(cache) == 1


def test_least_recently_used_entry_is_evicted():
    cache = VerseCache(max_entries=2, ttl_seconds=0)
    cache.set('a', 1)
    cache.set('b', 2)
    cache.get('a')  # 'b' is now the oldest
    cache.set('c', 3)

    assert 'a' in cache
    assert 'b' not in cache
    assert 'c' in cache
    assert cache.get_stats()['evictions'] == 1


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = VerseCache(max_entries=10, ttl_seconds=60, clock=clock)
    cache.set('chapter', {1: 'text'})

    clock.now += 59
    assert cache.get('chapter') == {1: 'text'}

    clock.now += 2
    assert 'chapter' not in cache
    assert cache.get('chapter') is None
    assert cache.get_stats()['expired'] == 1
    assert len(cache) == 0


def test_zero_ttl_never_expires():
    clock = FakeClock()
    cache = VerseCache(max_entries=10, ttl_seconds=0, clock=clock)
    cache.set('key', 'value')

    clock.now += 10 ** 9
    assert cache.get('key') == 'value'


def test_injected_store_is_used():
    store = OrderedDict()
    cache = VerseCache(store=store, max_entries=10, ttl_seconds=0)
    cache.set(('books', 'en', 'nwtsty'), {1: {'name': 'Genesis'}})

    assert list(store) == [('books', 'en', 'nwtsty')]
    assert store[('books', 'en', 'nwtsty')][1] == {1: {'name': 'Genesis'}}


def test_get_or_load_calls_loader_once():
    cache = VerseCache(max_entries=10, ttl_seconds=0)
    loader = Mock(return_value='loaded')

    assert cache.get_or_load('key', loader) == 'loaded'
    assert cache.get_or_load('key', loader) == 'loaded'
    loader.assert_called_once_with()


def test_stats_and_clear():
    cache = VerseCache(max_entries=10, ttl_seconds=0)
    cache.set('key', 'value')
    cache.get('key')
    cache.get('other')

    stats = cache.get_stats()
    assert stats['hits'] == 1
    assert stats['misses'] == 1
    assert stats['entries'] == 1

    cache.clear()
    assert len(cache) == 0


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv('CACHE_MAX_ENTRIES', '3')
    monkeypatch.setenv('CACHE_TTL_SECONDS', '120')

    cache = VerseCache()

    assert cache.max_entries == 3
    assert cache.ttl_seconds == 120


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, '-v']))
