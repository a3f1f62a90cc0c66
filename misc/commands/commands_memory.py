from __future__ import annotations

from discord.ext import commands
from memory.service import forget_memories_by_title
from memory.service import load_live_memories
from memory.store import MemoryStoreError
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates


def _shorten(text: str, limit: int) -> str:
    clean = " ".join((text or "").split())
    if len(clean) <= limit:
        return clean
    return clean[: max(0, limit - 3)] + "..."


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.command(name="memories")
    async def memories_cmd(ctx: commands.Context):
        if not gates.in_allowed_channel(ctx):
            return
        try:
            records = await load_live_memories(deps.memory_store, now=deps.now(), lock=deps.memory_lock)
        except MemoryStoreError as exc:
            print(f"[Memory] list failed code={exc.code}: {exc}")
            await ctx.send(f"Could not read memory: {exc.code}")
            return

        if not records:
            await ctx.send("No live memories.")
            return

        lines = [f"Live memories ({len(records)}):"]
        for record in records:
            expires = record.expires_on or "never"
            created = (record.created_at or "?")[:10]
            flag = " [superuser]" if record.issued_by_superuser else ""
            lines.append(
                f"- {record.title}{flag} (created={created} expires={expires}) :: {_shorten(record.text, 120)}"
            )
        await deps.send_chunked(ctx.channel, "```\n" + "\n".join(lines)[:7000] + "\n```")

    @bot.command(name="forget")
    async def forget_cmd(ctx: commands.Context, *, title: str = ""):
        if not gates.in_allowed_channel(ctx):
            return
        if not gates.user_is_superuser(ctx.author):
            await ctx.send("This command is superuser-only.")
            return
        title = (title or "").strip()
        if not title:
            await ctx.send("Usage: `!forget <title>`")
            return

        try:
            removed = await forget_memories_by_title(deps.memory_store, title, lock=deps.memory_lock)
        except MemoryStoreError as exc:
            print(f"[Memory] forget failed code={exc.code}: {exc}")
            await ctx.send(f"Forget failed: {exc.code}")
            return

        if removed:
            await ctx.send(f"Forgot {removed} memory record(s) titled '{title}'.")
        else:
            await ctx.send(f"No memory titled '{title}'.")
