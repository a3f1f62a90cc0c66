from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from typing import Any
from typing import Callable

from memory.store import MemoryStore


def _default_false(*args, **kwargs) -> bool:
    return False


@dataclass(frozen=True)
class CommandDeps:
    memory_lock: Any = None
    memory_store: MemoryStore | None = None
    send_chunked: Callable | None = None
    now: Callable[[], datetime] | None = None


@dataclass(frozen=True)
class CommandGates:
    in_allowed_channel: Callable[[Any], bool] = _default_false
    allowed_channel_ids: set[int] = field(default_factory=set)
    user_is_superuser: Callable[[Any], bool] = _default_false
