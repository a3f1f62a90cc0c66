from __future__ import annotations

import asyncio
from dataclasses import dataclass

import openai
from pydantic import ValidationError

from memory.models import ResponsePayload


@dataclass(frozen=True, slots=True)
class CompletionResult:
    payload: ResponsePayload | None
    error_code: str | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.payload is not None and self.error_code is None

    @classmethod
    def success(cls, payload: ResponsePayload) -> "CompletionResult":
        return cls(payload=payload)

    @classmethod
    def failure(cls, error_code: str, detail: str = "") -> "CompletionResult":
        return cls(payload=None, error_code=error_code, detail=detail)


def _short(text: str, limit: int = 300) -> str:
    clean = " ".join((text or "").split())
    if len(clean) <= limit:
        return clean
    return clean[: limit - 3] + "..."


def parse_completion_output(resp) -> CompletionResult:
    """
    Validate the raw structured output against ResponsePayload.

    Validation is strict: wrong types, missing keys and unknown keys are all
    rejected instead of being coerced into shape.
    """
    raw = str(getattr(resp, "output_text", "") or "").strip()
    if not raw:
        return CompletionResult.failure("empty_output", "model returned no text")
    try:
        payload = ResponsePayload.model_validate_json(raw, strict=True)
    except ValidationError as exc:
        return CompletionResult.failure("schema_validation", _short(str(exc)))
    if not payload.message.strip():
        return CompletionResult.failure("empty_output", "model returned an empty message")
    return CompletionResult.success(payload)


async def request_completion(
    client,
    *,
    model: str,
    prompt: str,
    timeout_seconds: float,
) -> CompletionResult:
    try:
        resp = await asyncio.wait_for(
            asyncio.to_thread(
                client.responses.parse,
                model=model,
                input=[{"role": "user", "content": prompt}],
                text_format=ResponsePayload,
            ),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        return CompletionResult.failure("timeout", f"no completion within {timeout_seconds:g}s")
    except ValidationError as exc:
        # the SDK validates against text_format while parsing
        return CompletionResult.failure("schema_validation", _short(str(exc)))
    except openai.OpenAIError as exc:
        return CompletionResult.failure("api_error", _short(f"{type(exc).__name__}: {exc}"))

    return parse_completion_output(resp)
