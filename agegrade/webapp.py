from __future__ import annotations

import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from .engine import AgeGradeEngine
from .standards import DataUnavailableError, EditionNotFoundError, pick_default_event
from .util import normalize_sex


logger = logging.getLogger(__name__)

API_ENDPOINTS = ("/api/editions", "/api/events", "/api/peaks", "/api/compute")


def run_web(*, engine: AgeGradeEngine, host: str = "127.0.0.1", port: int = 8000) -> None:
    server = make_server(engine=engine, host=host, port=port)
    url = f"http://{host}:{server.server_address[1]}/"
    print(f"Serving age grade API: {url}")
    try:
        server.serve_forever()
    finally:
        server.server_close()


def make_server(*, engine: AgeGradeEngine, host: str = "127.0.0.1", port: int = 8000) -> ThreadingHTTPServer:
    class Handler(_Handler):
        _engine = engine

    return ThreadingHTTPServer((host, int(port)), Handler)


class _Handler(BaseHTTPRequestHandler):
    _engine: AgeGradeEngine

    def log_message(self, fmt: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), fmt % args)

    def do_GET(self) -> None:  # noqa: N802
        parsed = urlparse(self.path)
        path = parsed.path
        qs = parse_qs(parsed.query)

        if path in {"/", "/api", "/api/"}:
            return self._json({"endpoints": list(API_ENDPOINTS)})

        if path.startswith("/api/"):
            try:
                payload = self._handle_api(path, qs)
            except _ApiError as exc:
                return self._json({"error": exc.message}, status=exc.status)
            except EditionNotFoundError as exc:
                return self._json({"error": str(exc)}, status=404)
            except DataUnavailableError as exc:
                logger.warning("Data unavailable for %s: %s", path, exc)
                return self._json({"error": "Standards data unavailable"}, status=503)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Unhandled error for %s", self.path)
                return self._json({"error": f"{type(exc).__name__}: {exc}"}, status=500)
            return self._json(payload)

        return self._json({"error": "Not found"}, status=404)

    def _handle_api(self, path: str, qs: dict[str, list[str]]) -> dict[str, Any] | list[dict[str, Any]]:
        if path == "/api/editions":
            editions = self._engine.editions()
            default_index = editions[-1].index if editions else None
            return {"editions": [e.to_dict() for e in editions], "default": default_index}

        if path == "/api/events":
            edition_id = _get_opt(qs, "edition")
            sex = _sex_param(qs)
            events = self._engine.events(edition_id, sex)
            return {"sex": sex, "events": events, "default_event": pick_default_event(events)}

        if path == "/api/peaks":
            edition_id = _get_opt(qs, "edition")
            sex = _sex_param(qs)
            peak = self._engine.peak_table(edition_id, sex)
            return {"sex": sex, "peaks": [{"event": ev, "seconds": secs} for ev, secs in peak.items()]}

        if path == "/api/compute":
            try:
                result = self._engine.compute(
                    _get_opt(qs, "edition"),
                    _get_one(qs, "sex"),
                    _get_opt(qs, "age"),
                    _get_opt(qs, "event"),
                    _get_opt(qs, "time"),
                    qs.get("target", []),
                    custom_sex=_get_one(qs, "custom_sex", default="M"),
                    custom_age=_get_opt(qs, "custom_age"),
                )
            except ValueError as exc:
                raise _ApiError(400, str(exc)) from exc
            return result.to_dict()

        raise _ApiError(404, "Unknown API endpoint")

    def _json(self, data: Any, *, status: int = 200) -> None:
        raw = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(int(status))
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Cache-Control", "no-store")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        self.wfile.write(raw)


class _ApiError(Exception):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = int(status)
        self.message = message


def _get_one(qs: dict[str, list[str]], key: str, *, default: Optional[str] = None) -> str:
    if key not in qs or not qs[key]:
        if default is not None:
            return default
        raise _ApiError(400, f"Missing parameter: {key}")
    return qs[key][0]


def _get_opt(qs: dict[str, list[str]], key: str) -> Optional[str]:
    values = qs.get(key)
    return values[0] if values else None


def _sex_param(qs: dict[str, list[str]]) -> str:
    try:
        return normalize_sex(_get_one(qs, "sex"))
    except ValueError as exc:
        raise _ApiError(400, str(exc)) from exc
