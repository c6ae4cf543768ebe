"""Newest-first in-memory buffer of captured events with a byte budget."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from hogwatch.core.entities import CapturedEvent
from hogwatch.defaults.config import MIB, BufferConfig
from hogwatch.utils.size import estimate_event_size

logger = logging.getLogger(__name__)

SizeEstimator = Callable[[CapturedEvent], int]


class CaptureStore:
    """Ordered event buffer; index 0 is the most recent capture.

    Every mutation is synchronous and bumps :attr:`revision`, which the
    persistence layer uses to tell fresh snapshots from stale ones.
    """

    def __init__(
        self,
        config: BufferConfig | None = None,
        *,
        estimator: SizeEstimator = estimate_event_size,
    ) -> None:
        self.config = config or BufferConfig()
        self._estimate = estimator
        self._events: deque[CapturedEvent] = deque()
        # sizes recorded at insert time, parallel to _events
        self._sizes: deque[int] = deque()
        self._total_size = 0
        self._revision = 0

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[CapturedEvent]:
        return iter(self._events)

    @property
    def total_size(self) -> int:
        return self._total_size

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def over_budget(self) -> bool:
        return self._total_size > self.config.ceiling_bytes

    def snapshot(self) -> list[CapturedEvent]:
        """Current events, newest first.

        The records are shared with the buffer, so their ``decoded`` documents
        must not be mutated. Accounting uses the sizes recorded on insert, so
        the running total stays consistent either way.
        """
        return list(self._events)

    def to_payload(self) -> list[dict[str, Any]]:
        return [event.to_dict() for event in self._events]

    def insert(self, event: CapturedEvent) -> int:
        size = self._estimate(event)
        self._events.appendleft(event)
        self._sizes.appendleft(size)
        self._total_size += size
        self._revision += 1
        return size

    def replace(self, events: Iterable[CapturedEvent]) -> None:
        """Swap in a full sequence (newest first) and recompute the total."""
        self._events = deque(events)
        self._sizes = deque(self._estimate(event) for event in self._events)
        self._total_size = sum(self._sizes)
        self._revision += 1

    def clear(self) -> None:
        self._events = deque()
        self._sizes = deque()
        self._total_size = 0
        self._revision += 1

    def bytes_to_free(self) -> int:
        proportional = int(self._total_size * self.config.eviction_fraction)
        return max(self.config.target_free_bytes, proportional)

    def evict(self, bytes_to_free: int, *, keep: int = 0) -> int:
        """Drop the oldest events until ``bytes_to_free`` is reclaimed.

        Stops early once only ``keep`` events remain. Returns how many events
        were removed.
        """
        freed = 0
        removed = 0
        while freed < bytes_to_free and len(self._events) > keep:
            self._events.pop()
            freed += self._sizes.pop()
            removed += 1
        if removed:
            self._total_size -= freed
            self._revision += 1
            logger.info(
                "evicted %d events, freed %.2f MiB",
                removed,
                freed / MIB,
                extra={"evicted": removed, "freed_bytes": freed},
            )
        return removed

    def evict_to_budget(self) -> int:
        """Bring the total back under the ceiling with headroom to spare.

        On overflow the overshoot is reclaimed plus :meth:`bytes_to_free`, so a
        burst is absorbed in one pass instead of one eviction per insert. The
        newest event is never evicted here: a single event larger than the
        ceiling stays buffered on its own.
        """
        removed = 0
        while self.over_budget and len(self._events) > 1:
            overshoot = self._total_size - self.config.ceiling_bytes
            removed += self.evict(overshoot + self.bytes_to_free(), keep=1)
        return removed
