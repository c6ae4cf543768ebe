from __future__ import annotations

import argparse
import logging
from typing import Any, Protocol

from flask import Flask, jsonify, request

from hogwatch.client.dispatcher import parse_request
from hogwatch.core.entities import CapturedEvent
from hogwatch.infra.logger import get_logger
from hogwatch.utils.describe import event_to_description, get_event_display_name
from hogwatch.utils.url import is_capture_endpoint

from .runtime import InspectorRuntime


class InspectorRuntimeLike(Protocol):
    def is_loaded(self) -> bool: ...

    def list_events(self) -> list[CapturedEvent]: ...

    def clear_events(self) -> bool: ...

    def capture(self, url: str, data: bytes, timestamp: str | None = None) -> bool: ...


def _event_view(event: CapturedEvent) -> dict[str, Any]:
    view = event.to_dict()
    if event.decoded is not None:
        view["description"] = event_to_description(event.decoded)
        view["displayName"] = get_event_display_name(event.event_name or "")
    return view


def create_app(*, testing: bool = False, runtime: InspectorRuntimeLike | None = None) -> Flask:
    app = Flask(__name__)
    app.config["TESTING"] = testing
    inspector_runtime = runtime or InspectorRuntime()
    app.config["INSPECTOR_RUNTIME"] = inspector_runtime

    @app.get("/api/health")
    def health():
        return jsonify({"status": "ok", "loaded": inspector_runtime.is_loaded()})

    @app.get("/api/events")
    def events():
        return jsonify({"events": [_event_view(event) for event in inspector_runtime.list_events()]})

    @app.post("/api/events/clear")
    def clear_events():
        return jsonify({"success": inspector_runtime.clear_events()})

    @app.post("/api/capture")
    def capture():
        data = request.get_json(silent=True)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return jsonify({"error": "request body must be a JSON object"}), 400
        try:
            parsed = parse_request({**data, "action": "captureEvent"})
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        success = inspector_runtime.capture(parsed.url, parsed.data, parsed.timestamp)
        return jsonify({"success": success})

    def ingest():
        # posthog-js pointed at this host uploads its batches here directly
        if not is_capture_endpoint(request.url, request.method):
            return jsonify({"error": "expected a gzip-js compressed batch"}), 400
        page_url = request.headers.get("Referer") or request.url
        inspector_runtime.capture(page_url, request.get_data())
        return jsonify({"status": 1})

    for rule in ("/e/", "/i/v0/e/"):
        app.add_url_rule(rule, endpoint=f"ingest_{rule.strip('/').replace('/', '_')}", view_func=ingest, methods=["POST"])

    return app


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the hogwatch capture inspector.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", default=8080, type=int)
    parser.add_argument("--debug", action="store_true")
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    get_logger(level=logging.DEBUG if args.debug else logging.INFO)
    app = create_app()
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
