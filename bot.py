import asyncio
import os
import random
from datetime import datetime, timezone

import discord
from discord.ext import commands
from openai import OpenAI

from config.defaults import DEFAULT_BACKSTORY_PATH
from config.defaults import DEFAULT_COMPLETION_TIMEOUT_SECONDS
from config.defaults import DEFAULT_HISTORY_LIMIT
from config.defaults import DEFAULT_MEMORY_CAP
from config.defaults import DEFAULT_MEMORY_PATH
from config.defaults import DEFAULT_OPENAI_MODEL
from config.defaults import DEFAULT_PERSONA_PATH
from config.defaults import DEFAULT_RANDOM_REPLY_CHANCE
from config.defaults import DEFAULT_RETENTION_POLICY
from config.defaults import FALLBACK_REPLY
from config.env import env_float
from config.env import env_int
from config.env import parse_id_set
from controller.persona import load_backstory
from controller.persona import load_persona
from memory.retention import RetentionPolicy
from memory.retention import parse_retention_policy
from memory.store import MemoryStore
from misc.discord_messages import reply_chunked
from misc.discord_messages import send_chunked
from misc.runtime_deps import RuntimeDeps
from misc.runtime_wiring import wire_bot_runtime

# =========================
# ENV
# =========================
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")
if not OPENAI_API_KEY:
    raise RuntimeError("Missing OPENAI_API_KEY env var")

OPENAI_MODEL = os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL).strip() or DEFAULT_OPENAI_MODEL

# =========================
# MEMORY
# =========================
MEMORY_PATH = os.getenv("STEFAN_MEMORY_PATH", DEFAULT_MEMORY_PATH)
MEMORY_CAP = env_int("STEFAN_MEMORY_CAP", DEFAULT_MEMORY_CAP)

_raw_policy = os.getenv("STEFAN_RETENTION_POLICY", DEFAULT_RETENTION_POLICY)
try:
    RETENTION_POLICY = parse_retention_policy(_raw_policy)
except ValueError:
    print(
        f"[CFG] invalid STEFAN_RETENTION_POLICY={_raw_policy!r}; "
        f"falling back to {DEFAULT_RETENTION_POLICY!r}"
    )
    RETENTION_POLICY = RetentionPolicy(DEFAULT_RETENTION_POLICY)

# =========================
# PROMPT CONTEXT
# =========================
BACKSTORY_PATH = os.getenv("STEFAN_BACKSTORY_PATH", DEFAULT_BACKSTORY_PATH)
# Missing backstory is fatal (ConfigurationError).
BACKSTORY_LINES = load_backstory(BACKSTORY_PATH)

PERSONA_PATH = os.getenv("STEFAN_PERSONA_PATH", DEFAULT_PERSONA_PATH)
PERSONA, PERSONA_WARNING = load_persona(PERSONA_PATH)
if PERSONA_WARNING:
    print(f"[CFG] {PERSONA_WARNING}")

HISTORY_LIMIT = env_int("STEFAN_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT)

# =========================
# GATE + LLM
# =========================
RANDOM_REPLY_CHANCE = env_float("STEFAN_RANDOM_REPLY_CHANCE", DEFAULT_RANDOM_REPLY_CHANCE, maximum=1.0)
COMPLETION_TIMEOUT_SECONDS = env_float(
    "STEFAN_COMPLETION_TIMEOUT_SECONDS",
    DEFAULT_COMPLETION_TIMEOUT_SECONDS,
    minimum=1.0,
)
ALLOWED_CHANNEL_IDS = parse_id_set(os.getenv("STEFAN_ALLOWED_CHANNEL_IDS"))
SUPERUSER_IDS = parse_id_set(os.getenv("STEFAN_SUPERUSER_IDS"))

print(
    f"[CFG] model={OPENAI_MODEL} persona={PERSONA.name}({PERSONA.version}) "
    f"policy={RETENTION_POLICY.value} cap={MEMORY_CAP} memory_path={MEMORY_PATH} "
    f"history={HISTORY_LIMIT} random_chance={RANDOM_REPLY_CHANCE} timeout_s={COMPLETION_TIMEOUT_SECONDS} "
    f"backstory_lines={len(BACKSTORY_LINES)} "
    f"allowed_channels={len(ALLOWED_CHANNEL_IDS) or 'all'} superusers={len(SUPERUSER_IDS)}"
)

client = OpenAI(api_key=OPENAI_API_KEY, timeout=COMPLETION_TIMEOUT_SECONDS)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def user_is_superuser(user: discord.abc.User) -> bool:
    uid = int(getattr(user, "id", 0) or 0)
    return bool(uid) and uid in SUPERUSER_IDS


intents = discord.Intents.default()
intents.guilds = True
intents.messages = True
intents.message_content = True

bot = commands.Bot(command_prefix="!", intents=intents)

wire_bot_runtime(
    bot,
    deps=RuntimeDeps(
        memory_lock=asyncio.Lock(),
        memory_store=MemoryStore(MEMORY_PATH),
        reply_chunked=reply_chunked,
        now=utc_now,
        allowed_channel_ids=ALLOWED_CHANNEL_IDS,
        random_reply_chance=RANDOM_REPLY_CHANCE,
        rng=random.Random(),
        persona=PERSONA,
        backstory_lines=BACKSTORY_LINES,
        history_limit=HISTORY_LIMIT,
        superuser_ids=SUPERUSER_IDS,
        client=client,
        openai_model=OPENAI_MODEL,
        completion_timeout_seconds=COMPLETION_TIMEOUT_SECONDS,
        fallback_reply=FALLBACK_REPLY,
        retention_policy=RETENTION_POLICY,
        memory_cap=MEMORY_CAP,
    ),
    send_chunked=send_chunked,
    user_is_superuser=user_is_superuser,
)


bot.run(DISCORD_TOKEN)
