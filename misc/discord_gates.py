from __future__ import annotations

import random
from dataclasses import dataclass

import discord


@dataclass(frozen=True, slots=True)
class GateSignals:
    is_self_authored: bool
    mentions_bot: bool
    mentions_broadcast: bool
    replies_to_bot: bool
    random_hit: bool


def should_respond(signals: GateSignals) -> bool:
    if signals.is_self_authored:
        return False
    return (
        signals.mentions_bot
        or signals.mentions_broadcast
        or signals.replies_to_bot
        or signals.random_hit
    )


def message_in_allowed_channels(message: discord.Message, allowed_channel_ids: set[int]) -> bool:
    # Empty allowlist means every channel the bot can read.
    if not allowed_channel_ids:
        return True
    if getattr(message, "guild", None) is None:
        return True

    channel_id = int(getattr(message.channel, "id", 0) or 0)
    if channel_id in allowed_channel_ids:
        return True
    # thread: allow if parent is allowed
    if isinstance(message.channel, discord.Thread) and message.channel.parent:
        return int(message.channel.parent.id) in allowed_channel_ids
    return False


def is_bot_authored(message: discord.Message, bot_user) -> bool:
    author = message.author
    if getattr(author, "bot", False):
        return True
    return bot_user is not None and int(getattr(author, "id", 0) or 0) == int(bot_user.id)


def mentions_user(message: discord.Message, user) -> bool:
    if user is None:
        return False
    user_id = int(user.id)
    return any(int(getattr(m, "id", 0) or 0) == user_id for m in (message.mentions or []))


async def replies_to_user(message: discord.Message, user) -> bool:
    """True when `message` is a reply to something `user` wrote. Lookup failures count as no."""
    ref = getattr(message, "reference", None)
    if ref is None or user is None or ref.message_id is None:
        return False

    # resolved may be missing or a deleted-message stub without an author
    target = getattr(ref, "resolved", None)
    if getattr(target, "author", None) is None:
        try:
            target = await message.channel.fetch_message(ref.message_id)
        except (discord.HTTPException, discord.ClientException) as exc:
            print(f"[Chat] could not resolve referenced message {ref.message_id}: {exc}")
            return False

    author = getattr(target, "author", None)
    return author is not None and int(getattr(author, "id", 0) or 0) == int(user.id)


async def evaluate_gate(
    message: discord.Message,
    bot_user,
    *,
    rng: random.Random,
    threshold: float,
) -> GateSignals:
    if is_bot_authored(message, bot_user):
        return GateSignals(
            is_self_authored=True,
            mentions_bot=False,
            mentions_broadcast=False,
            replies_to_bot=False,
            random_hit=False,
        )
    return GateSignals(
        is_self_authored=False,
        mentions_bot=mentions_user(message, bot_user),
        mentions_broadcast=bool(getattr(message, "mention_everyone", False)),
        replies_to_bot=await replies_to_user(message, bot_user),
        random_hit=rng.random() < threshold,
    )
