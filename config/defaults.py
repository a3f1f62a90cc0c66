from __future__ import annotations

DEFAULT_OPENAI_MODEL = "gpt-4o"

DEFAULT_MEMORY_PATH = "promptContent/memory.json"
DEFAULT_BACKSTORY_PATH = "promptContent/backstory.txt"
DEFAULT_PERSONA_PATH = "config/persona.yml"

# replace | incremental
DEFAULT_RETENTION_POLICY = "incremental"
DEFAULT_MEMORY_CAP = 10

DEFAULT_HISTORY_LIMIT = 10
DEFAULT_RANDOM_REPLY_CHANCE = 0.10
DEFAULT_COMPLETION_TIMEOUT_SECONDS = 60.0

FALLBACK_REPLY = "Something went wrong"
