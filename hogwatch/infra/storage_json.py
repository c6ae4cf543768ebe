"""JSON-file backing for the capture buffer."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from hogwatch.core.errors import PersistenceReadError, PersistenceWriteError
from hogwatch.infra.backing import BackingStore, encode_value


class JsonFileBacking(BackingStore):
    """Simple JSON-backed async storage implementation.

    All keys share one file, which is rewritten on every save.
    """

    def __init__(self, path: str | Path, quota_bytes: int | None = None) -> None:
        self.path = Path(path)
        self.quota_bytes = quota_bytes
        self._lock = asyncio.Lock()

    async def _read_state(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = await asyncio.to_thread(self.path.read_text, "utf-8")
        except OSError as exc:
            raise PersistenceReadError(f"cannot read {self.path}: {exc}") from exc
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PersistenceReadError(f"{self.path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceReadError(f"{self.path} does not hold a JSON object")
        return data

    async def _write_state(self, state: dict[str, Any]) -> None:
        payload = json.dumps(state, separators=(",", ":"))
        try:
            await asyncio.to_thread(self.path.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(self.path.write_text, payload, "utf-8")
        except OSError as exc:
            raise PersistenceWriteError(f"cannot write {self.path}: {exc}") from exc

    async def load(self, key: str) -> Any | None:
        try:
            state = await self._read_state()
        except PersistenceReadError as exc:
            exc.key = key
            raise
        return state.get(key)

    async def save(self, key: str, value: Any) -> None:
        encode_value(key, value, self.quota_bytes)
        async with self._lock:
            try:
                state = await self._read_state()
            except PersistenceReadError:
                state = {}
            state[key] = value
            await self._write_state(state)
