"""Bounded, thread-safe word cache shared by the workers of one model."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")

DEFAULT_CACHE_CAPACITY = 10_000
DEFAULT_SHARDS = 16


class _Shard(Generic[K, V]):
    __slots__ = ("lock", "entries", "capacity")

    def __init__(self, capacity: int) -> None:
        self.lock = threading.Lock()
        self.entries: OrderedDict[K, V] = OrderedDict()
        self.capacity = capacity


class LRUCache(Generic[K, V]):
    """Least-recently-used cache split into independently locked shards.

    Capacity is spread evenly over the shards; `capacity=0` disables caching.
    When two threads race to insert the same key, the first value stays, so
    every later lookup sees a single result.
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_CAPACITY, shards: int = DEFAULT_SHARDS) -> None:
        if capacity < 0:
            raise ValueError("capacity must be non-negative")
        self.capacity = capacity
        n_shards = max(1, min(shards, capacity)) if capacity else 1
        per_shard = -(-capacity // n_shards) if capacity else 0
        self._shards: list[_Shard[K, V]] = [_Shard(per_shard) for _ in range(n_shards)]

    def _shard(self, key: K) -> _Shard[K, V]:
        return self._shards[hash(key) % len(self._shards)]

    def get(self, key: K) -> V | None:
        if not self.capacity:
            return None
        shard = self._shard(key)
        with shard.lock:
            value = shard.entries.get(key)
            if value is not None:
                shard.entries.move_to_end(key)
            return value

    def set(self, key: K, value: V) -> V:
        """Insert `value` unless `key` is already cached; return the cached value."""
        if not self.capacity:
            return value
        shard = self._shard(key)
        with shard.lock:
            existing = shard.entries.get(key)
            if existing is not None:
                shard.entries.move_to_end(key)
                return existing
            shard.entries[key] = value
            while len(shard.entries) > shard.capacity:
                shard.entries.popitem(last=False)
            return value

    def clear(self) -> None:
        for shard in self._shards:
            with shard.lock:
                shard.entries.clear()

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.entries)
        return total

    def __contains__(self, key: object) -> bool:
        if not self.capacity:
            return False
        shard = self._shard(key)  # type: ignore[arg-type]
        with shard.lock:
            return key in shard.entries
