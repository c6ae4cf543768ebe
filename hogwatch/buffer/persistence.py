"""Lazy loading and bounded-retry saving of the capture buffer."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any

from hogwatch.buffer.retry import RetryPolicy, SaveResult
from hogwatch.buffer.store import CaptureStore
from hogwatch.core.entities import CapturedEvent
from hogwatch.infra.backing import BackingStore

logger = logging.getLogger(__name__)


class LoadState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"


class PersistenceCoordinator:
    """Keeps a :class:`CaptureStore` in sync with a :class:`BackingStore`.

    The backing is read at most once: concurrent callers of
    :meth:`ensure_loaded` share a single in-flight load. Saves always write the
    full current sequence and run one at a time, so an older snapshot can never
    land after a newer one.
    """

    def __init__(
        self,
        store: CaptureStore,
        backing: BackingStore,
        *,
        policy: RetryPolicy | None = None,
    ) -> None:
        self.store = store
        self.backing = backing
        self.key = store.config.storage_key
        self.policy = policy or RetryPolicy.from_config(store.config)
        self.last_result: SaveResult | None = None
        self._state = LoadState.UNLOADED
        self._load_task: asyncio.Future[None] | None = None
        self._save_lock = asyncio.Lock()
        self._saved_revision: int | None = None
        self._pending: set[asyncio.Future[SaveResult]] = set()

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def loaded(self) -> bool:
        return self._state is LoadState.READY

    async def ensure_loaded(self) -> None:
        if self._state is LoadState.READY:
            return
        if self._load_task is None:
            self._state = LoadState.LOADING
            self._load_task = asyncio.ensure_future(self._load())
        await asyncio.shield(self._load_task)

    async def _load(self) -> None:
        try:
            stored = await self.backing.load(self.key)
        except Exception as exc:
            logger.warning(
                "failed to read stored events, starting empty: %s",
                exc,
                extra={"storage_key": self.key},
            )
            stored = None
            clean = False
        else:
            clean = True

        events, parsed_cleanly = self._parse_stored(stored)
        self.store.replace(events)
        if clean and parsed_cleanly:
            self._saved_revision = self.store.revision

        if self.store.over_budget:
            self.store.evict_to_budget()
            async with self._save_lock:
                self.last_result = await self._persist()

        self._state = LoadState.READY
        logger.debug("loaded %d events (%d bytes)", len(self.store), self.store.total_size)

    def _parse_stored(self, stored: Any) -> tuple[list[CapturedEvent], bool]:
        if stored is None:
            return [], True
        if not isinstance(stored, list):
            logger.warning(
                "stored value is %s, not a list; starting empty",
                type(stored).__name__,
                extra={"storage_key": self.key},
            )
            return [], False
        events: list[CapturedEvent] = []
        for item in stored:
            try:
                events.append(CapturedEvent.from_dict(item))
            except (TypeError, ValueError) as exc:
                logger.debug("skipping malformed stored event: %s", exc)
        return events, len(events) == len(stored)

    async def persist_with_retry(self) -> SaveResult:
        async with self._save_lock:
            result = await self._persist()
        self.last_result = result
        return result

    async def _persist(self) -> SaveResult:
        if self._saved_revision == self.store.revision:
            return SaveResult.skipped()

        evicted = 0
        reason = ""
        attempt = 0
        max_attempts = self.policy.max_attempts
        while attempt < max_attempts:
            attempt += 1
            revision = self.store.revision
            try:
                await self.backing.save(self.key, self.store.to_payload())
            except Exception as exc:
                reason = str(exc) or type(exc).__name__
                logger.warning(
                    "save attempt %d/%d failed: %s",
                    attempt,
                    max_attempts,
                    reason,
                    extra={"storage_key": self.key, "attempt": attempt},
                )
            else:
                self._saved_revision = revision
                return SaveResult.success(attempt, evicted)

            if not len(self.store):
                break
            if attempt < max_attempts:
                evicted += self.store.evict(self.policy.bytes_to_free(self.store.total_size, attempt))

        logger.error(
            "giving up on saving %d events after %d attempts: %s",
            len(self.store),
            attempt,
            reason,
            extra={"storage_key": self.key, "attempt": attempt, "evicted": evicted},
        )
        return SaveResult.exhausted(reason, attempt, evicted)

    def schedule_persist(self) -> asyncio.Future[SaveResult]:
        """Start a save in the background and return its task."""
        task = asyncio.ensure_future(self.persist_with_retry())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_idle(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
