"""In-memory fixed window rate limiter keyed by sender phone number."""

from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass

from bookshelf_sms.assistant.sharding import ShardedMap

DEFAULT_MAX_REQUESTS = 20
DEFAULT_WINDOW_SECONDS = 60


@dataclass
class RateLimitEntry:
    sender_id: str
    window_start: float
    count: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: float | None = None  # seconds until the window rolls


class SenderRateLimiter:
    """Fixed window rate limiter per sender.

    Default: 20 messages per 60 seconds per sender. A sender's window starts
    with their first message and is replaced, not extended, once it expires.
    After the first rejection in a window the counter stops moving, so a
    flood of denied requests costs nothing further.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        shard_count: int = 64,
    ) -> None:
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._entries: ShardedMap[RateLimitEntry] = ShardedMap(shard_count)

    def check_and_increment(
        self, sender_id: str, now: float | None = None,
    ) -> RateLimitDecision:
        """Count one message from ``sender_id`` and decide whether to allow it."""
        if now is None:
            now = time.time()
        shard = self._entries.shard_for(sender_id)
        with shard.lock:
            entry = shard.entries.get(sender_id)
            if entry is None or self._expired(entry, now):
                shard.entries[sender_id] = RateLimitEntry(sender_id, now, 1)
                return RateLimitDecision(allowed=True)

            if entry.count <= self._max_requests:
                entry.count += 1
            if entry.count > self._max_requests:
                return RateLimitDecision(
                    allowed=False,
                    retry_after=max(0.0, entry.window_start + self._window_seconds - now),
                )
            return RateLimitDecision(allowed=True)

    def status(
        self, sender_id: str, now: float | None = None,
    ) -> RateLimitEntry | None:
        """Return a snapshot of the sender's active window, if any."""
        if now is None:
            now = time.time()
        shard = self._entries.shard_for(sender_id)
        with shard.lock:
            entry = shard.entries.get(sender_id)
            if entry is None or self._expired(entry, now):
                return None
            return dataclasses.replace(entry)

    def cleanup(self, now: float | None = None) -> int:
        """Drop every entry whose window has expired. Returns the count removed."""
        if now is None:
            now = time.time()
        removed = 0
        for shard in self._entries.shards():
            with shard.lock:
                stale = [k for k, e in shard.entries.items() if self._expired(e, now)]
                for key in stale:
                    del shard.entries[key]
                removed += len(stale)
        return removed

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: RateLimitEntry, now: float) -> bool:
        return now - entry.window_start >= self._window_seconds
