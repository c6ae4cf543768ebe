"""Durable key/value backing interface and an in-memory implementation."""

from __future__ import annotations

import json
from typing import Any, Protocol

from hogwatch.core.errors import PersistenceReadError, PersistenceWriteError


class BackingStore(Protocol):
    """Protocol for the durable store behind the capture buffer.

    ``save`` raises :class:`PersistenceWriteError` when a value is rejected,
    ``load`` raises :class:`PersistenceReadError` when a stored value cannot be
    read back, and returns ``None`` when nothing is stored under ``key``.
    """

    async def load(self, key: str) -> Any | None:
        ...

    async def save(self, key: str, value: Any) -> None:
        ...


def encode_value(key: str, value: Any, quota_bytes: int | None = None) -> str:
    try:
        encoded = json.dumps(value, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise PersistenceWriteError(f"value is not JSON serializable: {exc}", key) from exc
    size = len(key) + len(encoded)
    if quota_bytes is not None and size > quota_bytes:
        raise PersistenceWriteError(
            f"QUOTA_BYTES quota exceeded ({size} > {quota_bytes})",
            key,
            size=size,
        )
    return encoded


def decode_value(key: str, encoded: str) -> Any:
    try:
        return json.loads(encoded)
    except json.JSONDecodeError as exc:
        raise PersistenceReadError(f"stored value is not valid JSON: {exc}", key) from exc


class MemoryBacking(BackingStore):
    """Process-local backing, optionally capped like a browser storage area."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    async def load(self, key: str) -> Any | None:
        encoded = self._data.get(key)
        if encoded is None:
            return None
        return decode_value(key, encoded)

    async def save(self, key: str, value: Any) -> None:
        self._data[key] = encode_value(key, value, self.quota_bytes)
