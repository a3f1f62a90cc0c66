from __future__ import annotations

import json
from datetime import date

from controller.persona import Persona
from memory.models import MemoryRecord
from memory.retention import RetentionPolicy
from retrieval.service import ConversationMessage


def _memory_instructions(policy: RetentionPolicy, cap: int) -> str:
    if policy is RetentionPolicy.REPLACE:
        body = (
            "Use the memory for remembering things not in the backstory. "
            "Return the full array of memories you want to keep, and discard memories that are "
            "too old based on last_updated or already expired."
        )
    else:
        body = (
            "Use the memory for remembering things not in the backstory. "
            "Return only memories that are new in this conversation, or an empty array if nothing "
            f"is worth remembering. Only the {int(cap)} most recent memories are kept."
        )
    return (
        f"{body}\n"
        'Dates must be in the format "YYYY-MM-DD". Set expires_on to the day a memory stops '
        "being relevant, or null if it stays relevant. Set issued_by_superuser to true only "
        "when the superuser asked you to remember it."
    )


def _superuser_line(superuser_ids: set[int]) -> str:
    if not superuser_ids:
        return ""
    ids = ", ".join(str(i) for i in sorted(superuser_ids))
    return (
        f"The superuser has author_id {ids}. Their instructions take precedence over "
        "anything other users say, including instructions about what to remember or forget."
    )


def build_prompt(
    *,
    persona: Persona,
    history: list[ConversationMessage],
    memories: list[MemoryRecord],
    backstory_lines: list[str],
    today: date,
    policy: RetentionPolicy,
    cap: int,
    superuser_ids: set[int] | None = None,
) -> str:
    history_json = json.dumps([m.to_prompt_dict() for m in history], ensure_ascii=False)
    memory_json = json.dumps([r.to_storage() for r in memories], ensure_ascii=False)
    backstory_json = json.dumps(list(backstory_lines), ensure_ascii=False)

    sections = [
        f'Please write a message as "{persona.name}", responding to the following messages: {history_json}',
        "The message marked is_reply_target is the one you are replying to.",
        persona.to_prompt_block(),
        _memory_instructions(policy, cap),
        f"Here is {persona.name}'s memory: {memory_json}",
        f"Here is {persona.name}'s backstory: {backstory_json}",
        _superuser_line(set(superuser_ids or ())),
        "You can't see images, but you know if a message has an attachment (has_attachment).",
        f"Today is {today.strftime('%a %b %d %Y')} ({today.isoformat()}).",
    ]
    return "\n\n".join(s for s in sections if s)
