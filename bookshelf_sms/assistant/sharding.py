"""Keyed in-memory map guarded by sharded locks.

Each key hashes to one shard; a shard owns its own ``threading.Lock`` and
dict. Operations on the same key always serialize on the same lock, while
keys in different shards never contend. Locks are held only for dictionary
work and never across an ``await``.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Generic, TypeVar

V = TypeVar("V")

DEFAULT_SHARD_COUNT = 64


@dataclass
class Shard(Generic[V]):
    lock: threading.Lock = field(default_factory=threading.Lock)
    entries: dict[str, V] = field(default_factory=dict)


class ShardedMap(Generic[V]):
    """Fixed set of lock-protected shards keyed by string."""

    def __init__(self, shard_count: int = DEFAULT_SHARD_COUNT) -> None:
        if shard_count < 1:
            raise ValueError("shard_count must be at least 1")
        self._shards: list[Shard[V]] = [Shard() for _ in range(shard_count)]

    def shard_for(self, key: str) -> Shard[V]:
        return self._shards[hash(key) % len(self._shards)]

    def shards(self) -> Iterator[Shard[V]]:
        return iter(self._shards)

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.entries)
        return total
