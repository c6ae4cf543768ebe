"""Captured event records and their persisted shape."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


def utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def new_event_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class CapturedEvent:
    """One ingested payload entry.

    A record carries either a ``decoded`` document or an ``error`` (with the
    original ``raw_data`` kept for debugging), never both.
    """

    id: str
    timestamp: str
    url: str
    domain: str
    decoded: dict[str, Any] | None = None
    raw_data: bytes | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        has_decoded = self.decoded is not None
        has_error = self.error is not None
        if has_decoded == has_error:
            raise ValueError("CapturedEvent needs exactly one of decoded or error")
        if has_decoded and self.raw_data is not None:
            raise ValueError("raw_data is only kept for failed decodes")

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def event_name(self) -> str | None:
        if self.decoded is None:
            return None
        name = self.decoded.get("event")
        return name if isinstance(name, str) else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "url": self.url,
            "domain": self.domain,
        }
        if self.decoded is not None:
            data["decoded"] = self.decoded
        if self.raw_data is not None:
            data["rawData"] = list(self.raw_data)
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "CapturedEvent":
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        for field_name in ("id", "timestamp", "url", "domain"):
            if not isinstance(data.get(field_name), str):
                raise ValueError(f"field {field_name!r} must be a string")
        decoded = data.get("decoded")
        if decoded is not None and not isinstance(decoded, dict):
            raise ValueError("field 'decoded' must be an object")
        raw = data.get("rawData")
        # older buffers kept raw bytes next to decoded documents
        raw_data = None
        if raw is not None and decoded is None:
            if not isinstance(raw, (list, bytes)):
                raise ValueError("field 'rawData' must be a list of byte values")
            raw_data = bytes(raw)
        error = data.get("error")
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            url=data["url"],
            domain=data["domain"],
            decoded=decoded,
            raw_data=raw_data,
            error=str(error) if error is not None else None,
        )
