"""Bounded save-retry policy and typed save outcomes."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from hogwatch.defaults.config import BufferConfig

# (total_size, attempt) -> bytes to evict before the next attempt
EvictionGrowth = Callable[[int, int], int]


class SaveStatus(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"
    EXHAUSTED = "exhausted"


@dataclass
class SaveResult:
    status: SaveStatus
    attempts: int = 0
    evicted: int = 0
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is not SaveStatus.EXHAUSTED

    @classmethod
    def success(cls, attempts: int, evicted: int = 0) -> "SaveResult":
        return cls(status=SaveStatus.OK, attempts=attempts, evicted=evicted)

    @classmethod
    def skipped(cls) -> "SaveResult":
        return cls(status=SaveStatus.SKIPPED)

    @classmethod
    def exhausted(cls, reason: str, attempts: int, evicted: int = 0) -> "SaveResult":
        return cls(status=SaveStatus.EXHAUSTED, attempts=attempts, evicted=evicted, reason=reason)


def proportional_growth(target_free_bytes: int, fraction: float) -> EvictionGrowth:
    def _growth(total_size: int, attempt: int) -> int:
        del attempt
        return max(target_free_bytes, int(total_size * fraction))

    return _growth


@dataclass
class RetryPolicy:
    max_attempts: int
    eviction_growth: EvictionGrowth

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_config(cls, config: BufferConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_save_attempts,
            eviction_growth=proportional_growth(config.target_free_bytes, config.eviction_fraction),
        )

    def bytes_to_free(self, total_size: int, attempt: int) -> int:
        return self.eviction_growth(total_size, attempt)
