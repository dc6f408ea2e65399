"""Conversation context store for multi-turn SMS exchanges.

This module provides the ConversationContextStore class for:
- Remembering the book and intent a sender last referred to
- Merging partial updates without losing unrelated fields
- TTL-based expiry with on-access and sweep eviction

State is process-local and deliberately not persisted: a restart forgets
every conversation.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from bookshelf_sms.assistant.sharding import ShardedMap
from bookshelf_sms.models import ConversationContext

DEFAULT_TTL_SECONDS = 1800  # 30 minutes

_MUTABLE_FIELDS = frozenset({"last_book_id", "last_intent", "last_query", "result_offset"})


class ConversationContextStore:
    """Per-sender conversation memory with inactivity expiry.

    Provides:
    - Lookup that treats stale entries as absent
    - Merge-style updates that always refresh ``updated_at``
    - Explicit clearing and periodic sweeping
    """

    def __init__(self, ttl_seconds: float | None = None, shard_count: int = 64) -> None:
        """Initialize the store.

        Args:
            ttl_seconds: Inactivity window after which a context is forgotten.
            shard_count: Number of lock shards for the backing map.
        """
        self._ttl = timedelta(
            seconds=DEFAULT_TTL_SECONDS if ttl_seconds is None else ttl_seconds,
        )
        self._contexts: ShardedMap[ConversationContext] = ShardedMap(shard_count)

    def get(self, sender_id: str, now: datetime | None = None) -> ConversationContext | None:
        """Return the live context for a sender, or None if absent or expired."""
        now = now or datetime.now(UTC)
        shard = self._contexts.shard_for(sender_id)
        with shard.lock:
            return self._live(shard.entries, sender_id, now)

    def update(
        self, sender_id: str, now: datetime | None = None, **changes: Any,
    ) -> ConversationContext:
        """Merge ``changes`` into the sender's context and return the result.

        Fields not named in ``changes`` are retained. Passing ``None`` for a
        field clears it. An expired context is replaced by a fresh one before
        the merge.

        Raises:
            ValueError: If ``changes`` names a field that cannot be updated.
        """
        unknown = set(changes) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown context fields: {sorted(unknown)}")
        if changes.get("result_offset") is None:
            changes.pop("result_offset", None)

        now = now or datetime.now(UTC)
        shard = self._contexts.shard_for(sender_id)
        with shard.lock:
            current = self._live(shard.entries, sender_id, now)
            if current is None:
                current = ConversationContext(sender_id=sender_id, updated_at=now)
            merged = ConversationContext.model_validate(
                {**current.model_dump(), **changes, "updated_at": now},
            )
            shard.entries[sender_id] = merged
            return merged

    def clear(self, sender_id: str) -> None:
        shard = self._contexts.shard_for(sender_id)
        with shard.lock:
            shard.entries.pop(sender_id, None)

    def sweep(self, now: datetime | None = None) -> int:
        """Physically remove expired contexts.

        Returns:
            Number of contexts removed.
        """
        now = now or datetime.now(UTC)
        removed = 0
        for shard in self._contexts.shards():
            with shard.lock:
                stale = [k for k, ctx in shard.entries.items() if self._expired(ctx, now)]
                for key in stale:
                    del shard.entries[key]
                removed += len(stale)
        return removed

    def __len__(self) -> int:
        return len(self._contexts)

    def _live(
        self, entries: dict[str, ConversationContext], sender_id: str, now: datetime,
    ) -> ConversationContext | None:
        ctx = entries.get(sender_id)
        if ctx is not None and self._expired(ctx, now):
            del entries[sender_id]
            return None
        return ctx

    def _expired(self, ctx: ConversationContext, now: datetime) -> bool:
        return now - ctx.updated_at > self._ttl
