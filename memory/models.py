from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

CALENDAR_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _check_calendar_date(value: str) -> str:
    if not CALENDAR_DATE_RE.match(value):
        raise ValueError(f"expected YYYY-MM-DD, got {value!r}")
    date.fromisoformat(value)
    return value


class MemoryEntry(BaseModel):
    """One memory item as the model returns it."""

    model_config = ConfigDict(extra="forbid")

    text: str = Field(..., description="What Stefan should remember")
    title: str = Field(..., description="Short label for the memory")
    last_updated: str = Field(..., description="Day the memory was last touched (YYYY-MM-DD)")
    expires_on: str | None = Field(..., description="Day the memory stops being relevant (YYYY-MM-DD) or null")
    issued_by_superuser: bool = Field(..., description="True when the superuser asked for this memory")

    @field_validator("last_updated")
    @classmethod
    def _validate_last_updated(cls, value: str) -> str:
        return _check_calendar_date(value)

    @field_validator("expires_on")
    @classmethod
    def _validate_expires_on(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _check_calendar_date(value)

    def expires_at(self) -> datetime | None:
        # Calendar day compared as the UTC instant at its start.
        if self.expires_on is None:
            return None
        day = date.fromisoformat(self.expires_on)
        return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


class MemoryRecord(MemoryEntry):
    """A stored memory: the model's entry plus the ingest timestamp."""

    created_at: str | None = Field(default=None, description="ISO-8601 UTC time the record was stored")

    @field_validator("created_at")
    @classmethod
    def _validate_created_at(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            datetime.fromisoformat(value)
        except ValueError as exc:
            raise ValueError(f"expected an ISO-8601 timestamp, got {value!r}") from exc
        return value

    @classmethod
    def from_entry(cls, entry: MemoryEntry, *, created_at: str | None) -> "MemoryRecord":
        return cls(**entry.model_dump(), created_at=created_at)

    def created_sort_key(self) -> datetime:
        if not self.created_at:
            return datetime.min.replace(tzinfo=timezone.utc)
        parsed = datetime.fromisoformat(self.created_at)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump()


class ResponsePayload(BaseModel):
    """Structured output contract for one completion."""

    model_config = ConfigDict(extra="forbid")

    rationale: str = Field(..., description="Why Stefan answers the way he does")
    message: str = Field(..., description="The reply to post in the channel")
    memory: list[MemoryEntry] = Field(..., description="Memory entries, per the memory instructions")
