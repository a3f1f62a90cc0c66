from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from controller.persona import Persona
from memory.retention import RetentionPolicy
from memory.store import MemoryStore


@dataclass(frozen=True)
class RuntimeDeps:
    # core
    memory_lock: Any
    memory_store: MemoryStore
    reply_chunked: Callable
    now: Callable[[], datetime]

    # gate
    allowed_channel_ids: set[int]
    random_reply_chance: float
    rng: random.Random

    # context
    persona: Persona
    backstory_lines: list[str]
    history_limit: int
    superuser_ids: set[int]

    # llm
    client: Any
    openai_model: str
    completion_timeout_seconds: float
    fallback_reply: str

    # memory
    retention_policy: RetentionPolicy
    memory_cap: int
