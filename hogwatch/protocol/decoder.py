"""Decoder for gzip-compressed capture batches.

posthog-js uploads batches to ``/e/?compression=gzip-js`` as a gzip stream
wrapping a UTF-8 JSON document. The document is either a list of events or a
single event object.
"""

from __future__ import annotations

import gzip
import json
import logging
import zlib
from dataclasses import dataclass
from typing import Any

from hogwatch.core.errors import DecodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodeFailure:
    reason: str


def _decompress(raw: bytes) -> str:
    try:
        data = gzip.decompress(raw)
    except (OSError, EOFError, zlib.error) as exc:
        raise DecodeError(f"decompression failed: {exc}") from exc
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"payload is not valid UTF-8: {exc}") from exc


def _parse(text: str) -> list[dict[str, Any]]:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"invalid JSON: {exc}") from exc
    except RecursionError as exc:
        raise DecodeError("invalid JSON: nesting too deep") from exc
    if isinstance(document, dict):
        return [document]
    if not isinstance(document, list):
        raise DecodeError(f"unexpected JSON document of type {type(document).__name__}")
    for index, item in enumerate(document):
        if not isinstance(item, dict):
            raise DecodeError(f"batch element {index} is {type(item).__name__}, expected an object")
    return document


def decode(raw: bytes) -> list[dict[str, Any]] | DecodeFailure:
    """Decode one payload into its event documents.

    ``raw`` is never modified; on failure the caller still owns the original
    bytes.
    """
    try:
        return _parse(_decompress(bytes(raw)))
    except DecodeError as exc:
        logger.debug("failed to decode capture payload: %s", exc.reason)
        return DecodeFailure(reason=exc.reason)


def encode(documents: Any) -> bytes:
    return gzip.compress(json.dumps(documents, separators=(",", ":")).encode("utf-8"))
