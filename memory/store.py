from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from memory.models import MemoryRecord


class MemoryStoreError(RuntimeError):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = str(code)


class MemoryStore:
    """
    Flat JSON file holding the bot's memory records.

    The file is a single JSON array. It is created as `[]` on first read and
    replaced wholesale on every save (temp file + os.replace), so a reader
    never sees a half-written array.

    Both methods block; call them through asyncio.to_thread from the event
    loop and hold the runtime memory lock around any read-modify-write.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def ensure_exists(self) -> None:
        if self.path.exists():
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("[]", encoding="utf-8")
        except OSError as exc:
            raise MemoryStoreError("init_failed", f"Could not create memory file {self.path}: {exc}") from exc

    def load(self) -> list[MemoryRecord]:
        self.ensure_exists()
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise MemoryStoreError("read_failed", f"Could not read memory file {self.path}: {exc}") from exc

        try:
            payload = json.loads(raw) if raw.strip() else []
        except json.JSONDecodeError as exc:
            raise MemoryStoreError("corrupt", f"Memory file {self.path} is not valid JSON: {exc}") from exc
        if not isinstance(payload, list):
            raise MemoryStoreError("corrupt", f"Memory file {self.path} must hold a JSON array")

        records: list[MemoryRecord] = []
        for idx, item in enumerate(payload):
            try:
                records.append(MemoryRecord.model_validate(item))
            except ValidationError as exc:
                raise MemoryStoreError("corrupt", f"Memory record #{idx} in {self.path} is invalid: {exc}") from exc
        return records

    def save(self, records: list[MemoryRecord]) -> None:
        text = json.dumps([r.to_storage() for r in records], ensure_ascii=False, indent=2)
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                delete=False,
                dir=str(self.path.parent),
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            ) as tmp:
                tmp.write(text)
                tmp.flush()
                os.fsync(tmp.fileno())
                tmp_name = tmp.name
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise MemoryStoreError("write_failed", f"Could not write memory file {self.path}: {exc}") from exc
