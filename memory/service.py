from __future__ import annotations

import asyncio
from datetime import datetime

from memory.models import MemoryEntry, MemoryRecord
from memory.retention import RetentionPolicy, live_memories, merge_memories
from memory.store import MemoryStore


async def load_live_memories(
    store: MemoryStore,
    *,
    now: datetime,
    lock: asyncio.Lock,
) -> list[MemoryRecord]:
    """Read the store and drop anything expired at `now`."""
    async with lock:
        records = await asyncio.to_thread(store.load)
    return live_memories(records, now)


async def apply_memory_delta(
    store: MemoryStore,
    delta: list[MemoryEntry],
    *,
    policy: RetentionPolicy,
    now: datetime,
    cap: int,
    lock: asyncio.Lock,
) -> list[MemoryRecord]:
    # The store is re-read under the lock so overlapping cycles see each other's writes.
    async with lock:
        existing = await asyncio.to_thread(store.load)
        merged = merge_memories(
            live_memories(existing, now),
            list(delta),
            policy=policy,
            now=now,
            cap=cap,
        )
        await asyncio.to_thread(store.save, merged)
    print(
        f"[Memory] policy={policy.value} before={len(existing)} delta={len(delta)} after={len(merged)}"
    )
    return merged


async def forget_memories_by_title(
    store: MemoryStore,
    title: str,
    *,
    lock: asyncio.Lock,
) -> int:
    needle = (title or "").strip().lower()
    if not needle:
        return 0
    async with lock:
        records = await asyncio.to_thread(store.load)
        kept = [r for r in records if r.title.strip().lower() != needle]
        removed = len(records) - len(kept)
        if removed:
            await asyncio.to_thread(store.save, kept)
    return removed
