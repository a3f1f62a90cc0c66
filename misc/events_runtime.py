from __future__ import annotations

import discord
from controller.completion import request_completion
from controller.prompt_assembly import build_prompt
from discord.ext import commands
from memory.service import apply_memory_delta
from memory.service import load_live_memories
from memory.store import MemoryStoreError
from misc.discord_gates import evaluate_gate
from misc.discord_gates import message_in_allowed_channels
from misc.discord_gates import should_respond
from misc.runtime_deps import RuntimeDeps
from retrieval.service import fetch_history_window


async def run_reply_cycle(message: discord.Message, *, bot_user, deps: RuntimeDeps) -> str:
    """
    Handle one incoming message end to end and return a short outcome label.

    Every failure is contained here: transport and store errors abandon the
    cycle, generation errors post the fallback reply, and a memory write
    failure after a successful reply is only logged.
    """
    if not message_in_allowed_channels(message, deps.allowed_channel_ids):
        return "skipped_channel"

    signals = await evaluate_gate(
        message,
        bot_user,
        rng=deps.rng,
        threshold=deps.random_reply_chance,
    )
    if not should_respond(signals):
        return "gated"

    now = deps.now()
    try:
        async with message.channel.typing():
            history = await fetch_history_window(message.channel, limit=deps.history_limit, now=now)
            memories = await load_live_memories(deps.memory_store, now=now, lock=deps.memory_lock)
            prompt = build_prompt(
                persona=deps.persona,
                history=history,
                memories=memories,
                backstory_lines=deps.backstory_lines,
                today=now.date(),
                policy=deps.retention_policy,
                cap=deps.memory_cap,
                superuser_ids=deps.superuser_ids,
            )
            result = await request_completion(
                deps.client,
                model=deps.openai_model,
                prompt=prompt,
                timeout_seconds=deps.completion_timeout_seconds,
            )
    except discord.HTTPException as exc:
        print(f"[Chat] history fetch failed channel={getattr(message.channel, 'id', '?')}: {exc}")
        return "transport_failed"
    except MemoryStoreError as exc:
        print(f"[Memory] read failed code={exc.code}: {exc}")
        return "memory_read_failed"

    if not result.ok:
        print(f"[LLM] generation failed code={result.error_code} detail={result.detail}")
        try:
            await deps.reply_chunked(message, deps.fallback_reply)
        except discord.HTTPException as exc:
            print(f"[Chat] fallback reply failed message={message.id}: {exc}")
            return "reply_failed"
        return "fallback"

    payload = result.payload
    print(f"[LLM] rationale={payload.rationale[:200]!r} memory_delta={len(payload.memory)}")
    try:
        await deps.reply_chunked(message, payload.message)
    except discord.HTTPException as exc:
        print(f"[Chat] reply failed message={message.id}: {exc}")
        return "reply_failed"

    try:
        await apply_memory_delta(
            deps.memory_store,
            payload.memory,
            policy=deps.retention_policy,
            now=deps.now(),
            cap=deps.memory_cap,
            lock=deps.memory_lock,
        )
    except MemoryStoreError as exc:
        print(f"[Memory] update failed after reply code={exc.code}: {exc}")
        return "memory_write_failed"
    return "replied"


async def dispatch_command(bot: commands.Bot, message: discord.Message) -> bool:
    """Invoke `message` as a command if it names a registered one. Other "!" text goes to the gate."""
    if message.author.bot or not (message.content or "").lstrip().startswith("!"):
        return False
    ctx = await bot.get_context(message)
    if not ctx.valid:
        return False
    await bot.invoke(ctx)
    return True


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
) -> None:
    @bot.event
    async def on_ready():
        print(f"Ready! Logged in as {bot.user}")
        try:
            deps.memory_store.ensure_exists()
        except MemoryStoreError as exc:
            print(f"[Memory] could not initialise store code={exc.code}: {exc}")

    @bot.event
    async def on_message(message: discord.Message):
        if await dispatch_command(bot, message):
            return

        outcome = await run_reply_cycle(message, bot_user=bot.user, deps=deps)
        if outcome not in {"gated", "skipped_channel"}:
            print(f"[Chat] message={message.id} outcome={outcome}")
