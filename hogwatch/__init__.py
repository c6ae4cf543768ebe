"""Bounded, durable capture buffer for PostHog analytics payloads."""

__version__ = "0.1.0"

__all__ = [
    "RequestDispatcher",
    "GetEvents",
    "ClearEvents",
    "CaptureEvent",
    "parse_request",
    "CaptureStore",
    "PersistenceCoordinator",
    "RetryPolicy",
    "SaveResult",
    "CapturedEvent",
    "BufferConfig",
    "HogwatchError",
    "DecodeFailure",
    "decode",
]


def __getattr__(name: str) -> object:
    """Lazy exports so importing the package does not pull in storage drivers."""
    if name in {"RequestDispatcher", "GetEvents", "ClearEvents", "CaptureEvent", "parse_request"}:
        from .client import dispatcher

        return getattr(dispatcher, name)

    if name == "CaptureStore":
        from .buffer.store import CaptureStore

        return CaptureStore

    if name == "PersistenceCoordinator":
        from .buffer.persistence import PersistenceCoordinator

        return PersistenceCoordinator

    if name in {"RetryPolicy", "SaveResult"}:
        from .buffer.retry import RetryPolicy, SaveResult

        return {"RetryPolicy": RetryPolicy, "SaveResult": SaveResult}[name]

    if name == "CapturedEvent":
        from .core.entities import CapturedEvent

        return CapturedEvent

    if name == "BufferConfig":
        from .defaults.config import BufferConfig

        return BufferConfig

    if name == "HogwatchError":
        from .core.errors import HogwatchError

        return HogwatchError

    if name in {"DecodeFailure", "decode"}:
        from .protocol.decoder import DecodeFailure, decode

        return {"DecodeFailure": DecodeFailure, "decode": decode}[name]

    raise AttributeError(f"module 'hogwatch' has no attribute {name!r}")
