from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


class ConfigurationError(RuntimeError):
    pass


@dataclass(slots=True)
class Persona:
    version: str = "persona_v1"
    name: str = "Stefan"
    tone: str = "casual and friendly"
    language: str = "reply in the language the conversation is held in"
    length: str = "about one or two sentences"
    mention_rules: list[str] = field(default_factory=list)
    extra_directives: list[str] = field(default_factory=list)

    def to_prompt_block(self) -> str:
        lines: list[str] = [
            f"Tone: {self.tone}.",
            f"Language: {self.language}.",
            f"Length: {self.length}.",
        ]
        if self.mention_rules:
            lines.append("Mentions:")
            for item in self.mention_rules:
                lines.append(f"- {item}")
        for item in self.extra_directives:
            lines.append(item)
        return "\n".join(lines)


def default_persona() -> Persona:
    return Persona(
        mention_rules=[
            "To mention someone, write <@USER_ID> using the author_id from the message history.",
            "Never mention @everyone or @here.",
        ],
        extra_directives=[
            "You can ignore messages that are clearly too old for this conversation.",
            "You don't have to mention things from the backstory or the memory if they aren't relevant.",
        ],
    )


def _as_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    out: list[str] = []
    for item in value:
        text = str(item or "").strip()
        if text:
            out.append(text)
    return out


def _as_text(value: Any, default: str) -> str:
    text = str(value or "").strip()
    return text or default


def load_persona(path: str | Path | None) -> tuple[Persona, str | None]:
    """
    Returns (persona, warning_message). warning_message is None on clean load.
    """
    defaults = default_persona()
    if not path:
        return (defaults, "Persona path missing; using built-in defaults.")

    p = Path(path)
    if not p.exists():
        return (defaults, f"Persona file not found at {p}; using built-in defaults.")

    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        return (defaults, f"Failed to read persona from {p}: {exc}; using built-in defaults.")

    if not isinstance(payload, dict):
        return (defaults, f"Invalid persona format in {p}; using built-in defaults.")

    persona = Persona(
        version=_as_text(payload.get("version"), defaults.version),
        name=_as_text(payload.get("name"), defaults.name),
        tone=_as_text(payload.get("tone"), defaults.tone),
        language=_as_text(payload.get("language"), defaults.language),
        length=_as_text(payload.get("length"), defaults.length),
        mention_rules=_as_list(payload.get("mention_rules")) or defaults.mention_rules,
        extra_directives=_as_list(payload.get("extra_directives")) or defaults.extra_directives,
    )
    return (persona, None)


def load_backstory(path: str | Path) -> list[str]:
    """Backstory is required: a missing or unreadable file stops startup."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Could not read backstory file {p}: {exc}") from exc
    return text.rstrip("\n").split("\n")
