from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from memory.models import MemoryEntry, MemoryRecord


class RetentionPolicy(str, Enum):
    # model returns the whole set it wants to keep
    REPLACE = "replace"
    # model returns only new entries; store keeps the newest `cap`
    INCREMENTAL = "incremental"


def parse_retention_policy(raw: str | None, default: RetentionPolicy = RetentionPolicy.INCREMENTAL) -> RetentionPolicy:
    clean = str(raw or "").strip().lower()
    if not clean:
        return default
    try:
        return RetentionPolicy(clean)
    except ValueError as exc:
        raise ValueError(f"Unknown retention policy: {raw!r} (expected 'replace' or 'incremental')") from exc


def utc_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def is_live(record: MemoryEntry, now: datetime) -> bool:
    expires_at = record.expires_at()
    return expires_at is None or expires_at > now


def live_memories(records: list[MemoryRecord], now: datetime) -> list[MemoryRecord]:
    return [r for r in records if is_live(r, now)]


def cap_newest(records: list[MemoryRecord], cap: int) -> list[MemoryRecord]:
    """Sort ascending by creation time (stable) and keep the newest `cap`."""
    ordered = sorted(records, key=lambda r: r.created_sort_key())
    if cap <= 0:
        return []
    if len(ordered) <= cap:
        return ordered
    return ordered[-cap:]


def merge_memories(
    existing: list[MemoryRecord],
    delta: list[MemoryEntry],
    *,
    policy: RetentionPolicy,
    now: datetime,
    cap: int,
) -> list[MemoryRecord]:
    stamp = utc_iso(now)

    if policy is RetentionPolicy.REPLACE:
        known = {(r.title, r.text): r.created_at for r in existing if r.created_at}
        candidates = [
            MemoryRecord.from_entry(entry, created_at=known.get((entry.title, entry.text)) or stamp)
            for entry in delta
        ]
    else:
        candidates = list(existing) + [MemoryRecord.from_entry(entry, created_at=stamp) for entry in delta]

    # Expiry is re-checked here whatever the model returned.
    return cap_newest(live_memories(candidates, now), cap)
