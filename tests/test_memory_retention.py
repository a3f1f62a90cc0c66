from __future__ import annotations

import unittest
from datetime import datetime
from datetime import timedelta
from datetime import timezone

from memory.models import MemoryEntry
from memory.models import MemoryRecord
from memory.retention import RetentionPolicy
from memory.retention import cap_newest
from memory.retention import live_memories
from memory.retention import merge_memories
from memory.retention import parse_retention_policy

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _entry(title: str, *, expires_on: str | None = None, text: str | None = None) -> MemoryEntry:
    return MemoryEntry(
        text=text or f"{title} text",
        title=title,
        last_updated="2026-03-10",
        expires_on=expires_on,
        issued_by_superuser=False,
    )


def _record(title: str, created_at: datetime | None, *, expires_on: str | None = None) -> MemoryRecord:
    return MemoryRecord.from_entry(
        _entry(title, expires_on=expires_on),
        created_at=created_at.isoformat() if created_at else None,
    )


class LiveMemoryFilterTests(unittest.TestCase):
    def test_expiry_at_or_before_now_is_dropped(self):
        at_midnight = datetime(2026, 3, 10, 0, 0, tzinfo=timezone.utc)
        records = [
            _record("past", NOW, expires_on="2026-03-09"),
            _record("today", NOW, expires_on="2026-03-10"),
            _record("tomorrow", NOW, expires_on="2026-03-11"),
            _record("forever", NOW, expires_on=None),
        ]
        kept = [r.title for r in live_memories(records, NOW)]
        self.assertEqual(kept, ["tomorrow", "forever"])

        # exactly at the expiry instant counts as expired
        kept_at_midnight = [r.title for r in live_memories(records, at_midnight)]
        self.assertNotIn("today", kept_at_midnight)
        just_before = at_midnight - timedelta(microseconds=1)
        self.assertIn("today", [r.title for r in live_memories(records, just_before)])

    def test_filter_is_idempotent(self):
        records = [
            _record("a", NOW, expires_on="2026-01-01"),
            _record("b", NOW, expires_on="2027-01-01"),
            _record("c", NOW),
        ]
        once = live_memories(records, NOW)
        twice = live_memories(once, NOW)
        self.assertEqual(once, twice)


class CapTests(unittest.TestCase):
    def test_cap_keeps_newest_in_ascending_order(self):
        base = NOW - timedelta(days=30)
        records = [_record(f"m{i}", base + timedelta(hours=i)) for i in range(12)]
        records.reverse()
        kept = cap_newest(records, 10)
        self.assertEqual([r.title for r in kept], [f"m{i}" for i in range(2, 12)])

    def test_ties_keep_later_inserted_entries(self):
        same = NOW - timedelta(days=1)
        records = [_record(f"t{i}", same) for i in range(4)]
        kept = cap_newest(records, 2)
        self.assertEqual([r.title for r in kept], ["t2", "t3"])

    def test_records_without_timestamp_sort_first(self):
        records = [_record("stamped", NOW), _record("legacy", None)]
        kept = cap_newest(records, 1)
        self.assertEqual([r.title for r in kept], ["stamped"])


class MergeTests(unittest.TestCase):
    def test_incremental_appends_stamped_entries(self):
        existing = [_record("old", NOW - timedelta(days=2))]
        merged = merge_memories(
            existing,
            [_entry("new")],
            policy=RetentionPolicy.INCREMENTAL,
            now=NOW,
            cap=10,
        )
        self.assertEqual([r.title for r in merged], ["old", "new"])
        self.assertEqual(merged[-1].created_at, NOW.isoformat())
        self.assertEqual(merged[-1].text, "new text")

    def test_incremental_evicts_oldest_beyond_cap(self):
        base = NOW - timedelta(days=20)
        existing = [_record(f"m{i}", base + timedelta(days=i)) for i in range(10)]
        merged = merge_memories(
            existing,
            [_entry("fresh")],
            policy=RetentionPolicy.INCREMENTAL,
            now=NOW,
            cap=10,
        )
        titles = [r.title for r in merged]
        self.assertEqual(len(merged), 10)
        self.assertNotIn("m0", titles)
        self.assertEqual(titles, [f"m{i}" for i in range(1, 10)] + ["fresh"])

    def test_incremental_cap_holds_for_large_delta(self):
        merged = merge_memories(
            [],
            [_entry(f"d{i}") for i in range(15)],
            policy=RetentionPolicy.INCREMENTAL,
            now=NOW,
            cap=10,
        )
        self.assertEqual([r.title for r in merged], [f"d{i}" for i in range(5, 15)])

    def test_replace_drops_missing_and_expired_entries(self):
        existing = [_record("kept", NOW - timedelta(days=3)), _record("dropped", NOW - timedelta(days=2))]
        merged = merge_memories(
            existing,
            [_entry("kept"), _entry("stale", expires_on="2026-03-01"), _entry("brand new")],
            policy=RetentionPolicy.REPLACE,
            now=NOW,
            cap=10,
        )
        titles = [r.title for r in merged]
        self.assertEqual(titles, ["kept", "brand new"])
        # an unchanged memory keeps its first creation time
        self.assertEqual(merged[0].created_at, (NOW - timedelta(days=3)).isoformat())
        self.assertEqual(merged[1].created_at, NOW.isoformat())

    def test_replace_with_changed_text_is_restamped(self):
        existing = [_record("topic", NOW - timedelta(days=3))]
        merged = merge_memories(
            existing,
            [_entry("topic", text="something else")],
            policy=RetentionPolicy.REPLACE,
            now=NOW,
            cap=10,
        )
        self.assertEqual(merged[0].created_at, NOW.isoformat())


class ParsePolicyTests(unittest.TestCase):
    def test_parses_known_values(self):
        self.assertIs(parse_retention_policy("replace"), RetentionPolicy.REPLACE)
        self.assertIs(parse_retention_policy(" Incremental "), RetentionPolicy.INCREMENTAL)
        self.assertIs(parse_retention_policy(""), RetentionPolicy.INCREMENTAL)

    def test_rejects_unknown_value(self):
        with self.assertRaises(ValueError):
            parse_retention_policy("keep-everything")


if __name__ == "__main__":
    unittest.main()
