"""Tests for the htsroute.cache module."""

import asyncio
import json
import logging
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from htsroute.cache import CacheRecord, ObjectStoreCache, RuleCache
from htsroute.errors import (
    CachePersistFailure,
    DeserializeFailure,
    ObjectFetchFailed,
    ObjectPutFailed,
)
from htsroute.objstore import InMemoryObjectStore
from htsroute.resolver import Format, Interval, RoutingRule

CACHE_BUCKET = "htsget-cache"
CACHE_KEY = "htsget-manifest-cache/R004"


def _rules() -> list[RoutingRule]:
    return [
        RoutingRule(
            regex="^R004/E1$",
            substitution_string="HG1/HG1",
            bucket="data",
            allow_formats=(Format.BAM,),
            allow_reference_names=("1",),
            allow_interval=Interval(start=1, end=10),
        ),
        RoutingRule(
            regex="^R004/E2$",
            substitution_string="HG2/HG2.hard-filtered",
            bucket="data",
            allow_formats=(Format.VCF,),
            allow_reference_names=("X",),
        ),
    ]


class TestCacheRecord:
    """Tests for CacheRecord serialization."""

    def test_json_layout(self):
        record = CacheRecord(item=_rules()[:1], max_age=60)
        data = json.loads(record.to_json())
        assert data["max_age"] == 60
        assert data["item"] == [_rules()[0].to_dict()]

    def test_from_json(self):
        record = CacheRecord(item=_rules(), max_age=60)
        assert CacheRecord.from_json(record.to_json()) == record

    @pytest.mark.parametrize(
        "raw",
        [
            b"{ invalid json }",
            b'{"max_age": 60}',
            b'{"item": [], "max_age": "60"}',
            b'{"item": [], "max_age": -1}',
            b'{"item": [{"regex": "^x$"}], "max_age": 60}',
        ],
    )
    def test_invalid_json(self, raw: bytes):
        with pytest.raises(DeserializeFailure):
            CacheRecord.from_json(raw)


class TestObjectStoreCacheGet:
    """Tests for ObjectStoreCache.get."""

    def test_implements_protocol(self):
        assert isinstance(ObjectStoreCache(InMemoryObjectStore(), CACHE_BUCKET), RuleCache)

    def test_absent_key(self, clock):
        cache = ObjectStoreCache(InMemoryObjectStore(clock=clock), CACHE_BUCKET, clock=clock)
        assert asyncio.run(cache.get(CACHE_KEY)) is None

    def test_round_trip(self, clock):
        cache = ObjectStoreCache(InMemoryObjectStore(clock=clock), CACHE_BUCKET, clock=clock)

        asyncio.run(cache.put(CACHE_KEY, _rules(), 60))

        assert asyncio.run(cache.get(CACHE_KEY)) == _rules()

    def test_freshness_window(self, clock):
        store = InMemoryObjectStore(clock=clock)
        cache = ObjectStoreCache(store, CACHE_BUCKET, clock=clock)
        written_at = clock.now
        asyncio.run(cache.put(CACHE_KEY, _rules(), 60))

        clock.now = written_at + timedelta(seconds=59, microseconds=999999)
        assert asyncio.run(cache.get(CACHE_KEY)) == _rules()

        clock.now = written_at + timedelta(seconds=60)
        assert asyncio.run(cache.get(CACHE_KEY)) is None

        clock.now = written_at + timedelta(days=1)
        assert asyncio.run(cache.get(CACHE_KEY)) is None

    def test_zero_max_age_is_never_fresh(self, clock):
        cache = ObjectStoreCache(InMemoryObjectStore(clock=clock), CACHE_BUCKET, clock=clock)
        asyncio.run(cache.put(CACHE_KEY, _rules(), 0))
        assert asyncio.run(cache.get(CACHE_KEY)) is None

    def test_window_anchored_to_store_timestamp(self, clock):
        store = InMemoryObjectStore(clock=clock)
        cache = ObjectStoreCache(store, CACHE_BUCKET, clock=clock)
        record = CacheRecord(item=_rules(), max_age=60)
        store.set_object(
            CACHE_BUCKET,
            CACHE_KEY,
            record.to_json(),
            last_modified=clock.now - timedelta(seconds=61),
        )
        assert asyncio.run(cache.get(CACHE_KEY)) is None

    def test_corrupted_record_is_a_miss(self, clock, caplog):
        store = InMemoryObjectStore(clock=clock)
        store.set_object(CACHE_BUCKET, CACHE_KEY, b"{ invalid json }")
        cache = ObjectStoreCache(store, CACHE_BUCKET, clock=clock)

        with caplog.at_level(logging.WARNING):
            assert asyncio.run(cache.get(CACHE_KEY)) is None

        assert "failure" in caplog.text

    def test_store_failure_is_a_miss(self, clock):
        store = AsyncMock()
        store.stat.return_value = clock.now
        store.get.side_effect = ObjectFetchFailed("connection reset")
        cache = ObjectStoreCache(store, CACHE_BUCKET, clock=clock)

        assert asyncio.run(cache.get(CACHE_KEY)) is None

    def test_stat_failure_is_a_miss(self, clock):
        store = AsyncMock()
        store.stat.side_effect = ObjectFetchFailed("connection reset")
        cache = ObjectStoreCache(store, CACHE_BUCKET, clock=clock)

        assert asyncio.run(cache.get(CACHE_KEY)) is None
        store.get.assert_not_called()


class TestObjectStoreCachePut:
    """Tests for ObjectStoreCache.put."""

    def test_writes_record(self, clock):
        store = InMemoryObjectStore(clock=clock)
        cache = ObjectStoreCache(store, CACHE_BUCKET, clock=clock)

        asyncio.run(cache.put(CACHE_KEY, _rules(), 86400))

        data, last_modified = store.objects[(CACHE_BUCKET, CACHE_KEY)]
        assert last_modified == clock.now
        assert json.loads(data)["max_age"] == 86400

    def test_failure(self, clock):
        store = AsyncMock()
        store.put.side_effect = ObjectPutFailed("access denied")
        cache = ObjectStoreCache(store, CACHE_BUCKET, clock=clock)

        with pytest.raises(CachePersistFailure) as excinfo:
            asyncio.run(cache.put(CACHE_KEY, _rules(), 60))

        assert excinfo.value.rules == _rules()
