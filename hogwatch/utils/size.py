"""Approximate byte cost of captured events."""

from __future__ import annotations

import json

from hogwatch.core.entities import CapturedEvent

# text is costed at two bytes per character
CHAR_BYTES = 2


def estimate_event_size(event: CapturedEvent) -> int:
    decoded_size = 0
    if event.decoded is not None:
        serialized = json.dumps(event.decoded, separators=(",", ":"), ensure_ascii=False)
        decoded_size = len(serialized) * CHAR_BYTES
    raw_size = len(event.raw_data) if event.raw_data is not None else 0
    metadata = len(event.id) + len(event.timestamp) + len(event.url) + len(event.domain)
    return decoded_size + raw_size + metadata * CHAR_BYTES
