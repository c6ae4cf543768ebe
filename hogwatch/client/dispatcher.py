"""Request/response surface over the capture buffer.

Three request shapes reach the buffer: ``GetEvents``, ``ClearEvents`` and
``CaptureEvent``. Each has its own handler, and each handler first makes sure
the stored buffer has been loaded.
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from hogwatch.buffer.persistence import PersistenceCoordinator
from hogwatch.buffer.retry import RetryPolicy
from hogwatch.buffer.store import CaptureStore
from hogwatch.core.entities import CapturedEvent, new_event_id, utc_now_iso
from hogwatch.defaults.config import BufferConfig
from hogwatch.infra.backing import BackingStore
from hogwatch.protocol.decoder import DecodeFailure, decode
from hogwatch.utils.url import extract_domain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GetEvents:
    pass


@dataclass(frozen=True)
class ClearEvents:
    pass


@dataclass(frozen=True)
class CaptureEvent:
    url: str
    data: bytes
    timestamp: str | None = None


Request = GetEvents | ClearEvents | CaptureEvent


@dataclass
class GetEventsResponse:
    events: list[CapturedEvent] = field(default_factory=list)

    def to_message(self) -> dict[str, Any]:
        return {"events": [event.to_dict() for event in self.events]}


@dataclass
class ClearEventsResponse:
    success: bool

    def to_message(self) -> dict[str, Any]:
        return {"success": self.success}


@dataclass
class CaptureEventResponse:
    success: bool = True

    def to_message(self) -> dict[str, Any]:
        return {"success": self.success}


Response = GetEventsResponse | ClearEventsResponse | CaptureEventResponse


def _coerce_bytes(data: Any) -> bytes:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("`data` string must be base64") from exc
    if isinstance(data, list):
        try:
            return bytes(data)
        except (TypeError, ValueError) as exc:
            raise ValueError("`data` list must hold byte values 0-255") from exc
    raise ValueError("`data` must be bytes, a list of byte values or a base64 string")


def parse_request(message: dict[str, Any]) -> Request:
    """Build a request from an ``{"action": ...}`` transport message."""
    if not isinstance(message, dict):
        raise ValueError("message must be an object")
    action = message.get("action")
    if action == "getEvents":
        return GetEvents()
    if action == "clearEvents":
        return ClearEvents()
    if action == "captureEvent":
        url = message.get("url")
        if not isinstance(url, str) or not url:
            raise ValueError("`url` is required")
        if "data" not in message:
            raise ValueError("`data` is required")
        timestamp = message.get("timestamp")
        if timestamp is not None and not isinstance(timestamp, str):
            raise ValueError("`timestamp` must be an ISO-8601 string")
        return CaptureEvent(url=url, data=_coerce_bytes(message["data"]), timestamp=timestamp or None)
    raise ValueError(f"unknown action: {action!r}")


class RequestDispatcher:
    """Routes each request variant to its handler."""

    def __init__(self, store: CaptureStore, coordinator: PersistenceCoordinator) -> None:
        self.store = store
        self.coordinator = coordinator
        self._handlers: dict[type, Callable[[Any], Awaitable[Response]]] = {
            GetEvents: self._handle_get,
            ClearEvents: self._handle_clear,
            CaptureEvent: self._handle_capture,
        }

    @classmethod
    def create(
        cls,
        backing: BackingStore,
        config: BufferConfig | None = None,
        *,
        policy: RetryPolicy | None = None,
    ) -> "RequestDispatcher":
        store = CaptureStore(config)
        return cls(store, PersistenceCoordinator(store, backing, policy=policy))

    async def handle(self, request: Request) -> Response:
        handler = self._handlers.get(type(request))
        if handler is None:
            raise TypeError(f"unsupported request type: {type(request).__name__}")
        return await handler(request)

    async def handle_message(self, message: dict[str, Any]) -> dict[str, Any]:
        response = await self.handle(parse_request(message))
        return response.to_message()

    async def get_events(self) -> list[CapturedEvent]:
        return (await self._handle_get(GetEvents())).events

    async def clear_events(self) -> bool:
        return (await self._handle_clear(ClearEvents())).success

    async def capture(self, url: str, data: bytes, timestamp: str | None = None) -> bool:
        response = await self._handle_capture(CaptureEvent(url=url, data=data, timestamp=timestamp))
        return response.success

    async def wait_idle(self) -> None:
        await self.coordinator.wait_idle()

    async def _handle_get(self, request: GetEvents) -> GetEventsResponse:
        del request
        await self.coordinator.ensure_loaded()
        return GetEventsResponse(events=self.store.snapshot())

    async def _handle_clear(self, request: ClearEvents) -> ClearEventsResponse:
        del request
        await self.coordinator.ensure_loaded()
        self.store.clear()
        result = await self.coordinator.persist_with_retry()
        return ClearEventsResponse(success=result.ok)

    async def _handle_capture(self, request: CaptureEvent) -> CaptureEventResponse:
        try:
            await self.coordinator.ensure_loaded()
            for event in build_events(request):
                self.store.insert(event)
                self.store.evict_to_budget()
            self.store.evict_to_budget()
            self.coordinator.schedule_persist()
        except Exception as exc:  # pragma: no cover - capture always acknowledges
            logger.error("failed to process captured payload: %s", exc, exc_info=True)
        return CaptureEventResponse(success=True)


def build_events(request: CaptureEvent) -> list[CapturedEvent]:
    timestamp = request.timestamp or utc_now_iso()
    domain = extract_domain(request.url)
    result = decode(request.data)
    if isinstance(result, DecodeFailure):
        return [
            CapturedEvent(
                id=new_event_id(),
                timestamp=timestamp,
                url=request.url,
                domain=domain,
                raw_data=bytes(request.data),
                error=result.reason,
            )
        ]
    return [
        CapturedEvent(
            id=new_event_id(),
            timestamp=timestamp,
            url=request.url,
            domain=domain,
            decoded=document,
        )
        for document in result
    ]
