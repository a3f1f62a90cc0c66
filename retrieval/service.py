from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR


@dataclass(frozen=True, slots=True)
class ConversationMessage:
    author_id: int
    user: str
    display_name: str
    content: str
    sent_on: str
    age: str
    has_attachment: bool
    is_reply_target: bool

    def to_prompt_dict(self) -> dict:
        return asdict(self)


def format_age(elapsed_ms: int | float) -> str:
    """Break a duration into whole days/hours/minutes/seconds, flooring at every unit."""
    total = max(0, int(elapsed_ms))
    days = total // MS_PER_DAY
    hours = (total % MS_PER_DAY) // MS_PER_HOUR
    minutes = (total % MS_PER_HOUR) // MS_PER_MINUTE
    seconds = (total % MS_PER_MINUTE) // MS_PER_SECOND
    return f"{days} days, {hours} hours, {minutes} minutes, {seconds} seconds"


def _best_display_name(user_obj) -> str:
    for attr in ("display_name", "global_name", "name"):
        value = getattr(user_obj, attr, None)
        if value:
            return str(value)
    return "unknown"


def _aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def snapshot_message(message, *, now: datetime, is_reply_target: bool) -> ConversationMessage:
    created = _aware(message.created_at)
    elapsed_ms = (now - created).total_seconds() * 1000
    return ConversationMessage(
        author_id=int(message.author.id),
        user=str(getattr(message.author, "name", "") or ""),
        display_name=_best_display_name(message.author),
        content=message.content or "",
        sent_on=created.strftime("%a %b %d %Y"),
        age=format_age(elapsed_ms),
        has_attachment=len(getattr(message, "attachments", None) or []) > 0,
        is_reply_target=is_reply_target,
    )


def snapshot_messages(messages: list, *, now: datetime) -> list[ConversationMessage]:
    """
    Snapshot a newest-first window of channel messages.

    The newest message is the one being answered and is flagged as the reply
    target. The result is oldest-first so it reads in chronological order.
    """
    snapshots = [
        snapshot_message(m, now=now, is_reply_target=(idx == 0))
        for idx, m in enumerate(messages)
    ]
    snapshots.reverse()
    return snapshots


async def fetch_history_window(channel, *, limit: int, now: datetime) -> list[ConversationMessage]:
    # channel.history yields newest first
    messages = [m async for m in channel.history(limit=max(1, int(limit)))]
    return snapshot_messages(messages, now=now)
