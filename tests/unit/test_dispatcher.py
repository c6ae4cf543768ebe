import asyncio
import base64
import gzip
from typing import Any

import pytest

from hogwatch.client.dispatcher import (
    CaptureEvent,
    CaptureEventResponse,
    ClearEvents,
    ClearEventsResponse,
    GetEvents,
    GetEventsResponse,
    RequestDispatcher,
    parse_request,
)
from hogwatch.core.errors import PersistenceWriteError
from hogwatch.defaults.config import BufferConfig
from hogwatch.infra.backing import MemoryBacking
from hogwatch.protocol.decoder import encode


def _run(coro):
    return asyncio.run(coro)


class CountingBacking(MemoryBacking):
    def __init__(self, *, load_delay: float = 0.0) -> None:
        super().__init__()
        self.load_calls = 0
        self._load_delay = load_delay

    async def load(self, key: str) -> Any | None:
        self.load_calls += 1
        await asyncio.sleep(self._load_delay)
        return await super().load(key)


class RejectingBacking(MemoryBacking):
    async def save(self, key: str, value: Any) -> None:
        raise PersistenceWriteError("QUOTA_BYTES quota exceeded", key)


def _batch(*names: str) -> bytes:
    return encode([{"event": name, "properties": {"$current_url": "https://app.example.com/"}} for name in names])


def test_capture_decodes_batch_into_newest_first_records() -> None:
    async def _case() -> None:
        dispatcher = RequestDispatcher.create(MemoryBacking())
        ok = await dispatcher.capture("https://app.example.com/pricing", _batch("$pageview", "signup"), "2024-05-01T10:00:00Z")
        assert ok is True

        events = await dispatcher.get_events()
        assert [e.decoded["event"] for e in events] == ["signup", "$pageview"]
        for event in events:
            assert event.timestamp == "2024-05-01T10:00:00Z"
            assert event.domain == "app.example.com"
            assert event.url == "https://app.example.com/pricing"
            assert event.raw_data is None
            assert event.error is None
        assert len({e.id for e in events}) == 2
        await dispatcher.wait_idle()

    _run(_case())


def test_capture_single_object_payload() -> None:
    async def _case() -> None:
        dispatcher = RequestDispatcher.create(MemoryBacking())
        await dispatcher.capture("https://a.example.org/", encode({"event": "$identify", "properties": {}}))
        events = await dispatcher.get_events()
        assert len(events) == 1
        assert events[0].event_name == "$identify"
        assert events[0].timestamp
        await dispatcher.wait_idle()

    _run(_case())


def test_capture_undecodable_bytes_keeps_raw_data() -> None:
    async def _case() -> None:
        dispatcher = RequestDispatcher.create(MemoryBacking())
        raw = b"\x00\x01definitely not gzip"
        response = await dispatcher.handle(CaptureEvent(url="https://x.example.com/", data=raw))
        assert isinstance(response, CaptureEventResponse)
        assert response.success is True

        events = await dispatcher.get_events()
        assert len(events) == 1
        assert events[0].decoded is None
        assert events[0].error
        assert events[0].raw_data == raw
        await dispatcher.wait_idle()

    _run(_case())


def test_capture_gzip_with_bad_json_is_an_error_record() -> None:
    async def _case() -> None:
        dispatcher = RequestDispatcher.create(MemoryBacking())
        raw = gzip.compress(b"{not json")
        await dispatcher.capture("https://x.example.com/", raw)
        events = await dispatcher.get_events()
        assert events[0].error is not None
        assert events[0].raw_data == raw
        await dispatcher.wait_idle()

    _run(_case())


def test_capture_deeply_nested_json_is_an_error_record() -> None:
    async def _case() -> None:
        dispatcher = RequestDispatcher.create(MemoryBacking())
        raw = gzip.compress(b"[" * 200_000)
        await dispatcher.capture("https://x.example.com/", raw)
        events = await dispatcher.get_events()
        assert len(events) == 1
        assert events[0].error is not None
        assert events[0].raw_data == raw
        await dispatcher.wait_idle()

    _run(_case())


def test_every_record_is_decoded_or_errored() -> None:
    async def _case() -> None:
        dispatcher = RequestDispatcher.create(MemoryBacking())
        await dispatcher.capture("https://a.example.com/", _batch("one", "two"))
        await dispatcher.capture("https://a.example.com/", b"garbage")
        await dispatcher.capture("https://a.example.com/", _batch("three"))
        for event in await dispatcher.get_events():
            assert (event.decoded is not None) != (event.error is not None)
            if event.decoded is not None:
                assert event.raw_data is None
        await dispatcher.wait_idle()

    _run(_case())


def test_clear_then_get_returns_empty_list() -> None:
    async def _case() -> None:
        backing = MemoryBacking()
        dispatcher = RequestDispatcher.create(backing)
        await dispatcher.capture("https://a.example.com/", _batch("one"))
        await dispatcher.wait_idle()

        response = await dispatcher.handle(ClearEvents())
        assert isinstance(response, ClearEventsResponse)
        assert response.success is True

        got = await dispatcher.handle(GetEvents())
        assert isinstance(got, GetEventsResponse)
        assert got.events == []
        assert await backing.load("capturedEvents") == []

    _run(_case())


def test_clear_reports_failure_when_backing_rejects() -> None:
    async def _case() -> None:
        dispatcher = RequestDispatcher.create(RejectingBacking())
        assert await dispatcher.clear_events() is False
        assert await dispatcher.get_events() == []

    _run(_case())


def test_capture_acknowledges_even_when_saves_fail() -> None:
    async def _case() -> None:
        dispatcher = RequestDispatcher.create(RejectingBacking())
        assert await dispatcher.capture("https://a.example.com/", _batch("one")) is True
        await dispatcher.wait_idle()
        result = dispatcher.coordinator.last_result
        assert result is not None
        assert not result.ok

    _run(_case())


def test_concurrent_actions_before_load_share_one_backing_load() -> None:
    async def _case() -> None:
        backing = CountingBacking(load_delay=0.01)
        dispatcher = RequestDispatcher.create(backing)

        got, cleared, captured = await asyncio.gather(
            dispatcher.handle(GetEvents()),
            dispatcher.handle(ClearEvents()),
            dispatcher.handle(CaptureEvent(url="https://a.example.com/", data=_batch("late"))),
        )
        assert backing.load_calls == 1
        assert got.events == []
        assert cleared.success is True
        assert captured.success is True
        assert [e.event_name for e in await dispatcher.get_events()] == ["late"]
        await dispatcher.wait_idle()

    _run(_case())


def test_captured_events_survive_a_restart() -> None:
    async def _case() -> None:
        backing = MemoryBacking()
        first = RequestDispatcher.create(backing)
        await first.capture("https://a.example.com/", _batch("one", "two"))
        await first.capture("https://a.example.com/", b"broken")
        await first.wait_idle()

        second = RequestDispatcher.create(backing)
        events = await second.get_events()
        assert [e.event_name for e in events] == [None, "two", "one"]
        assert events[0].raw_data == b"broken"
        assert second.store.total_size == first.store.total_size

    _run(_case())


def test_capture_enforces_budget_over_batches() -> None:
    async def _case() -> None:
        config = BufferConfig(ceiling_bytes=4_000, target_free_bytes=500)
        dispatcher = RequestDispatcher.create(MemoryBacking(), config)
        for i in range(20):
            await dispatcher.capture("https://a.example.com/", _batch(*(f"event-{i}-{j}" for j in range(5))))
            assert dispatcher.store.total_size <= 4_000
        events = await dispatcher.get_events()
        assert events[0].event_name == "event-19-4"
        await dispatcher.wait_idle()

    _run(_case())


def test_handle_rejects_unknown_request_type() -> None:
    async def _case() -> None:
        dispatcher = RequestDispatcher.create(MemoryBacking())
        with pytest.raises(TypeError):
            await dispatcher.handle(object())  # type: ignore[arg-type]

    _run(_case())


@pytest.mark.asyncio
async def test_handle_message_round_trips_transport_shape() -> None:
    dispatcher = RequestDispatcher.create(MemoryBacking())
    payload = list(_batch("$pageview"))
    reply = await dispatcher.handle_message({"action": "captureEvent", "url": "https://a.example.com/", "data": payload})
    assert reply == {"success": True}

    reply = await dispatcher.handle_message({"action": "getEvents"})
    assert reply["events"][0]["decoded"]["event"] == "$pageview"
    assert "rawData" not in reply["events"][0]

    reply = await dispatcher.handle_message({"action": "clearEvents"})
    assert reply == {"success": True}
    await dispatcher.wait_idle()


def test_parse_request_accepts_byte_list_and_base64() -> None:
    raw = _batch("x")
    from_list = parse_request({"action": "captureEvent", "url": "https://a/", "data": list(raw)})
    from_b64 = parse_request(
        {"action": "captureEvent", "url": "https://a/", "data": base64.b64encode(raw).decode("ascii"), "timestamp": "t"}
    )
    assert isinstance(from_list, CaptureEvent)
    assert from_list.data == raw
    assert from_b64.data == raw
    assert from_b64.timestamp == "t"
    assert isinstance(parse_request({"action": "getEvents"}), GetEvents)
    assert isinstance(parse_request({"action": "clearEvents"}), ClearEvents)


@pytest.mark.parametrize(
    "message",
    [
        {"action": "nope"},
        {"action": "captureEvent", "data": []},
        {"action": "captureEvent", "url": "https://a/"},
        {"action": "captureEvent", "url": "https://a/", "data": [256]},
        {"action": "captureEvent", "url": "https://a/", "data": "%%%"},
        {"action": "captureEvent", "url": "https://a/", "data": [], "timestamp": 5},
    ],
)
def test_parse_request_rejects_malformed_messages(message) -> None:
    with pytest.raises(ValueError):
        parse_request(message)
