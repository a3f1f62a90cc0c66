from __future__ import annotations

import asyncio
import importlib
import random
import tempfile
from datetime import datetime
from datetime import timezone
from pathlib import Path
from types import SimpleNamespace


class _DummyResponses:
    def parse(self, *args, **kwargs):
        return SimpleNamespace(
            output_text='{"rationale": "", "message": "hi", "memory": []}',
            output_parsed=None,
        )


class _DummyClient:
    def __init__(self):
        self.responses = _DummyResponses()


async def _noop_async(*args, **kwargs):
    return None


def _try_import_or_skip(module_name: str, pip_name: str | None = None) -> bool:
    try:
        importlib.import_module(module_name)
        return True
    except ModuleNotFoundError:
        install_name = pip_name or module_name
        print(
            f"Smoke wiring check skipped: missing dependency '{module_name}'. "
            f"Install requirements and retry (e.g. `pip install {install_name}` "
            f"or `pip install -e .`)."
        )
        return False


def _main() -> int:
    if not _try_import_or_skip("discord", "discord.py"):
        return 0

    import discord
    from discord.ext import commands
    from controller.persona import default_persona
    from memory.retention import RetentionPolicy
    from memory.store import MemoryStore
    from misc.runtime_deps import RuntimeDeps
    from misc.runtime_wiring import wire_bot_runtime

    intents = discord.Intents.none()
    bot = commands.Bot(command_prefix="!", intents=intents)

    with tempfile.TemporaryDirectory() as tmp:
        deps = RuntimeDeps(
            memory_lock=asyncio.Lock(),
            memory_store=MemoryStore(Path(tmp) / "memory.json"),
            reply_chunked=_noop_async,
            now=lambda: datetime(2026, 1, 1, tzinfo=timezone.utc),
            allowed_channel_ids={123456789012345678},
            random_reply_chance=0.1,
            rng=random.Random(0),
            persona=default_persona(),
            backstory_lines=["Stefan is a test fixture."],
            history_limit=10,
            superuser_ids=set(),
            client=_DummyClient(),
            openai_model="gpt-4o",
            completion_timeout_seconds=60,
            fallback_reply="Something went wrong",
            retention_policy=RetentionPolicy.INCREMENTAL,
            memory_cap=10,
        )
        wire_bot_runtime(
            bot,
            deps=deps,
            send_chunked=_noop_async,
            user_is_superuser=lambda user: True,
        )

    expected_commands = {"memories", "forget"}
    existing_commands = set(bot.all_commands.keys())
    missing = sorted(expected_commands - existing_commands)
    if missing:
        raise RuntimeError(f"Missing expected commands: {missing}")

    # @bot.event replaces the attribute on the bot instance
    for name in ("on_ready", "on_message"):
        handler = getattr(bot, name, None)
        if handler is None or getattr(handler, "__module__", "") != "misc.events_runtime":
            raise RuntimeError(f"Runtime event {name} was not registered")

    print("Smoke wiring check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
