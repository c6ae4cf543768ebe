from __future__ import annotations

import asyncio
import atexit
import contextlib
import logging
import threading
from typing import Any

from hogwatch.client.dispatcher import CaptureEvent, ClearEvents, GetEvents, RequestDispatcher
from hogwatch.core.entities import CapturedEvent
from hogwatch.defaults.config import InspectorConfig, config_from_env
from hogwatch.infra.backing import BackingStore, MemoryBacking
from hogwatch.infra.storage_json import JsonFileBacking
from hogwatch.infra.storage_sqlite import SQLiteBacking

logger = logging.getLogger(__name__)


def build_backing(config: InspectorConfig) -> BackingStore:
    if config.backing == "sqlite":
        return SQLiteBacking(config.path, quota_bytes=config.quota_bytes)
    if config.backing == "json":
        return JsonFileBacking(config.path, quota_bytes=config.quota_bytes)
    if config.backing == "memory":
        return MemoryBacking(quota_bytes=config.quota_bytes)
    raise ValueError(f"unknown backing {config.backing!r}; expected sqlite, json or memory")


class InspectorRuntime:
    """Capture buffer served from a private event loop thread.

    Flask handlers are synchronous; every call is forwarded to the loop that
    owns the dispatcher so all buffer work stays on one thread.
    """

    def __init__(self, config: InspectorConfig | None = None) -> None:
        self.config = config or config_from_env()
        self._loop = asyncio.new_event_loop()
        self._started = threading.Event()
        self._thread = threading.Thread(target=self._run_loop, name="hogwatch-inspector-loop", daemon=True)
        self._thread.start()
        self._started.wait(timeout=2.0)

        self._backing = build_backing(self.config)
        self._dispatcher = self._run_coro_sync(self._create_dispatcher())

        atexit.register(self.close)

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._started.set()
        self._loop.run_forever()

    def _run_coro_sync(self, coro: Any) -> Any:
        fut = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return fut.result(timeout=30.0)

    async def _create_dispatcher(self) -> RequestDispatcher:
        # asyncio primitives inside the coordinator must be created on the loop thread
        return RequestDispatcher.create(self._backing)

    def is_loaded(self) -> bool:
        return self._dispatcher.coordinator.loaded

    def list_events(self) -> list[CapturedEvent]:
        return self._run_coro_sync(self._dispatcher.handle(GetEvents())).events

    def clear_events(self) -> bool:
        return self._run_coro_sync(self._dispatcher.handle(ClearEvents())).success

    def capture(self, url: str, data: bytes, timestamp: str | None = None) -> bool:
        request = CaptureEvent(url=url, data=data, timestamp=timestamp)
        return self._run_coro_sync(self._dispatcher.handle(request)).success

    async def _teardown_async(self) -> None:
        await self._dispatcher.wait_idle()
        if isinstance(self._backing, SQLiteBacking):
            await self._backing.close()

    def close(self) -> None:
        if not self._loop.is_running():
            return
        with contextlib.suppress(Exception):
            self._run_coro_sync(self._teardown_async())
        self._loop.call_soon_threadsafe(self._loop.stop)
