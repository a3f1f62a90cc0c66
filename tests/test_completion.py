from __future__ import annotations

import json
import time
import unittest
from types import SimpleNamespace

import httpx
import openai
from pydantic import ValidationError

from controller.completion import CompletionResult
from controller.completion import parse_completion_output
from controller.completion import request_completion
from memory.models import MemoryEntry
from memory.models import ResponsePayload


def _payload(**overrides) -> dict:
    base = {
        "rationale": "they asked about the cat",
        "message": "Moog is asleep on the amp again.",
        "memory": [
            {
                "text": "Anna adopted a kitten",
                "title": "Anna's kitten",
                "last_updated": "2026-03-10",
                "expires_on": None,
                "issued_by_superuser": False,
            }
        ],
    }
    base.update(overrides)
    return base


def _resp(raw: str):
    return SimpleNamespace(output_text=raw, output_parsed=None)


class _FakeResponses:
    def __init__(self, *, result=None, exc: Exception | None = None, delay: float = 0.0):
        self.result = result
        self.exc = exc
        self.delay = delay
        self.calls: list[dict] = []

    def parse(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            time.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.result


class ParseCompletionOutputTests(unittest.TestCase):
    def test_valid_output_parses(self):
        result = parse_completion_output(_resp(json.dumps(_payload())))
        self.assertTrue(result.ok)
        self.assertEqual(result.payload.message, "Moog is asleep on the amp again.")
        self.assertIsInstance(result.payload.memory[0], MemoryEntry)

    def test_empty_output_fails(self):
        result = parse_completion_output(_resp("   "))
        self.assertFalse(result.ok)
        self.assertEqual(result.error_code, "empty_output")

    def test_blank_message_counts_as_empty(self):
        result = parse_completion_output(_resp(json.dumps(_payload(message="  "))))
        self.assertEqual(result.error_code, "empty_output")

    def test_missing_key_is_rejected(self):
        raw = _payload()
        del raw["rationale"]
        result = parse_completion_output(_resp(json.dumps(raw)))
        self.assertEqual(result.error_code, "schema_validation")
        self.assertIsNone(result.payload)

    def test_unknown_key_is_rejected(self):
        result = parse_completion_output(_resp(json.dumps(_payload(mood="grumpy"))))
        self.assertEqual(result.error_code, "schema_validation")

    def test_wrong_types_are_not_coerced(self):
        bad_memory = _payload()["memory"][0] | {"issued_by_superuser": "true"}
        result = parse_completion_output(_resp(json.dumps(_payload(memory=[bad_memory]))))
        self.assertEqual(result.error_code, "schema_validation")

        result = parse_completion_output(_resp(json.dumps(_payload(message=42))))
        self.assertEqual(result.error_code, "schema_validation")

    def test_bad_date_format_is_rejected(self):
        bad_memory = _payload()["memory"][0] | {"expires_on": "10/03/2026"}
        result = parse_completion_output(_resp(json.dumps(_payload(memory=[bad_memory]))))
        self.assertEqual(result.error_code, "schema_validation")

    def test_non_json_output_is_rejected(self):
        result = parse_completion_output(_resp("Sure! Here is my answer."))
        self.assertEqual(result.error_code, "schema_validation")


class RequestCompletionTests(unittest.IsolatedAsyncioTestCase):
    async def test_sends_prompt_with_schema(self):
        responses = _FakeResponses(result=_resp(json.dumps(_payload())))
        client = SimpleNamespace(responses=responses)
        result = await request_completion(client, model="gpt-4o", prompt="hello", timeout_seconds=5)
        self.assertTrue(result.ok)
        self.assertEqual(len(responses.calls), 1)
        call = responses.calls[0]
        self.assertEqual(call["model"], "gpt-4o")
        self.assertIs(call["text_format"], ResponsePayload)
        self.assertEqual(call["input"], [{"role": "user", "content": "hello"}])

    async def test_api_error_becomes_failure(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/responses")
        responses = _FakeResponses(exc=openai.APIConnectionError(request=request))
        client = SimpleNamespace(responses=responses)
        result = await request_completion(client, model="gpt-4o", prompt="hello", timeout_seconds=5)
        self.assertFalse(result.ok)
        self.assertEqual(result.error_code, "api_error")

    async def test_timeout_becomes_failure(self):
        responses = _FakeResponses(result=_resp(json.dumps(_payload())), delay=0.5)
        client = SimpleNamespace(responses=responses)
        result = await request_completion(client, model="gpt-4o", prompt="hello", timeout_seconds=0.05)
        self.assertFalse(result.ok)
        self.assertEqual(result.error_code, "timeout")

    async def test_sdk_validation_error_becomes_failure(self):
        with self.assertRaises(ValidationError) as ctx:
            ResponsePayload.model_validate({"message": "x"})
        responses = _FakeResponses(exc=ctx.exception)
        client = SimpleNamespace(responses=responses)
        result = await request_completion(client, model="gpt-4o", prompt="hello", timeout_seconds=5)
        self.assertEqual(result.error_code, "schema_validation")


class CompletionResultTests(unittest.TestCase):
    def test_failure_is_not_ok(self):
        self.assertFalse(CompletionResult.failure("timeout").ok)


if __name__ == "__main__":
    unittest.main()
