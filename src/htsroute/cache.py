"""
Cache of resolved routing rules stored in an object store.

Each release is cached as a JSON object at `<namespace>/<release_key>`
inside the cache bucket:

{
  "item": [
    {"regex": "^R004/E1$", "substitution_string": "HG1/HG1", ...}
  ],
  "max_age": 86400
}

The freshness of a record is anchored to the last-modified time of the
object as reported by the store, not to a timestamp inside the payload,
so the check works regardless of who wrote the object. A record written
at time T with max_age M is fresh for any time t < T + M.

The cache is best effort: reading never fails. Errors while reading are
logged and reported as a miss, which leads callers to fetch again from
the source of truth. Writing errors are instead raised.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from .errors import CachePersistFailure, DeserializeFailure, ObjectStoreError
from .objstore import ObjectStore, utcnow
from .resolver import RoutingRule

log = logging.getLogger("htsroute/cache")


@runtime_checkable
class RuleCache(Protocol):
    """
    Cache mapping a key to previously resolved routing rules.

    Methods:
        get: return the cached rules or None on miss or when stale.
        put: store rules along with the number of seconds they are valid.
    """

    async def get(self, key: str) -> list[RoutingRule] | None: ...

    async def put(self, key: str, rules: list[RoutingRule], max_age: int) -> None: ...


@dataclass(frozen=True, kw_only=True)
class CacheRecord:
    """Persisted cache record."""

    item: list[RoutingRule]
    max_age: int

    def to_json(self) -> bytes:
        """Serialize the record to JSON bytes."""
        data = {
            "item": [rule.to_dict() for rule in self.item],
            "max_age": self.max_age,
        }
        return json.dumps(data).encode("utf-8")

    @classmethod
    def from_json(cls, raw: bytes) -> CacheRecord:
        """
        Deserialize a record from JSON bytes.

        Raises:
            DeserializeFailure: if the payload is invalid.
        """
        try:
            data: Any = json.loads(raw)
            item = [RoutingRule.from_dict(rule) for rule in data["item"]]
            max_age = data["max_age"]
        except Exception as exc:
            raise DeserializeFailure(f"invalid cache record: {exc}") from exc
        if not isinstance(max_age, int) or isinstance(max_age, bool) or max_age < 0:
            raise DeserializeFailure(f"invalid cache record: bad max_age {max_age!r}")
        return cls(item=item, max_age=max_age)


class ObjectStoreCache:
    """RuleCache implementation persisting records into an object store bucket."""

    def __init__(
        self,
        store: ObjectStore,
        bucket: str,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """
        Initialize the cache.

        Parameters:
            store: the object store, which is borrowed and shared.
            bucket: the bucket containing the cache records.
            clock: function returning the current timezone-aware time.
        """
        self.store = store
        self.bucket = bucket
        self.clock = clock

    async def get(self, key: str) -> list[RoutingRule] | None:
        try:
            return await self._get(key)
        except Exception as exc:
            log.warning("cache get %s... failure: %s", key, exc)
            return None

    async def _get(self, key: str) -> list[RoutingRule] | None:
        last_modified = await self.store.stat(self.bucket, key)
        if last_modified is None:
            log.debug("cache get %s... miss", key)
            return None

        record = CacheRecord.from_json(await self.store.get(self.bucket, key))
        expires = last_modified + timedelta(seconds=record.max_age)
        if self.clock() >= expires:
            log.debug("cache get %s... stale (expired at %s)", key, expires.isoformat())
            return None

        log.debug("cache get %s... hit", key)
        return record.item

    async def put(self, key: str, rules: list[RoutingRule], max_age: int) -> None:
        """
        Store the rules under the given key.

        Raises:
            CachePersistFailure: if we cannot write the record.
        """
        record = CacheRecord(item=list(rules), max_age=max_age)
        try:
            await self.store.put(self.bucket, key, record.to_json())
        except ObjectStoreError as exc:
            raise CachePersistFailure(f"cannot cache {key}: {exc}", rules=rules) from exc
        log.debug("cache put %s (max_age=%d)... ok", key, max_age)
