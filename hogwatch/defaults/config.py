"""Default buffer and persistence constants."""

from __future__ import annotations

import os
from dataclasses import dataclass

MIB = 1024 * 1024

MAX_SIZE_BYTES = 8 * MIB
CLEANUP_SIZE_BYTES = 2 * MIB
MAX_SAVE_ATTEMPTS = 6
EVICTION_FRACTION = 0.25
STORAGE_KEY = "capturedEvents"

DEFAULT_BUFFER_CONFIG = {
    "ceiling_bytes": MAX_SIZE_BYTES,
    "target_free_bytes": CLEANUP_SIZE_BYTES,
    "max_save_attempts": MAX_SAVE_ATTEMPTS,
    "eviction_fraction": EVICTION_FRACTION,
    "storage_key": STORAGE_KEY,
}


@dataclass(frozen=True)
class BufferConfig:
    ceiling_bytes: int = MAX_SIZE_BYTES
    target_free_bytes: int = CLEANUP_SIZE_BYTES
    max_save_attempts: int = MAX_SAVE_ATTEMPTS
    eviction_fraction: float = EVICTION_FRACTION
    storage_key: str = STORAGE_KEY

    def __post_init__(self) -> None:
        if self.ceiling_bytes <= 0:
            raise ValueError("ceiling_bytes must be positive")
        if self.target_free_bytes <= 0:
            raise ValueError("target_free_bytes must be positive")
        if self.max_save_attempts < 1:
            raise ValueError("max_save_attempts must be at least 1")
        if not 0.0 < self.eviction_fraction <= 1.0:
            raise ValueError("eviction_fraction must be in (0, 1]")
        if not self.storage_key:
            raise ValueError("storage_key must be a non-empty string")


@dataclass
class InspectorConfig:
    backing: str = "sqlite"
    path: str = "hogwatch.db"
    quota_bytes: int | None = None


def config_from_env() -> InspectorConfig:
    quota = os.getenv("HOGWATCH_QUOTA_BYTES")
    return InspectorConfig(
        backing=os.getenv("HOGWATCH_BACKING", "sqlite"),
        path=os.getenv("HOGWATCH_DB", "hogwatch.db"),
        quota_bytes=int(quota) if quota else None,
    )
