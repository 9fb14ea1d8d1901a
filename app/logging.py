"""Logging setup for the reference-rate service.

Two kinds of structured events are emitted through ``extra`` payloads:

* ``request.*`` events for every API call, carrying the rate query that was
  asked (``base``, ``symbols``, the requested date or range);
* ``feed.*`` and ``sync.*`` events from the synchronizer, built with
  :func:`feed_log_extra`.

With ``LOG_JSON_ENABLED`` the payloads are rendered as one JSON object per line.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import UTC, datetime
from typing import Any

from flask import g, has_request_context, request
from werkzeug.exceptions import HTTPException

REQUEST_ID_HEADER = "X-Request-ID"

LOGGING_EXT_KEY = "fx_logging"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

# Query-string parameters of the rate endpoints worth echoing into request logs.
_QUERY_FIELDS = ("base", "symbols", "start_at", "end_at")


class JSONLogFormatter(logging.Formatter):
    """Render records as single-line JSON, merging ``extra`` fields at top level."""

    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self._service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self._service:
            payload["service"] = self._service
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                payload[key] = value

        return json.dumps(payload, default=str, separators=(",", ":"))


def setup_logging(app) -> None:
    """Install a single root handler and align Flask, werkzeug and APScheduler levels."""

    if app.extensions.get(LOGGING_EXT_KEY):
        return

    level = _resolve_level(app.config.get("LOG_LEVEL"), logging.INFO)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    if _to_bool(app.config.get("LOG_JSON_ENABLED", False)):
        handler.setFormatter(JSONLogFormatter(service=app.config.get("APP_NAME")))
    else:
        handler.setFormatter(
            logging.Formatter(
                app.config.get("LOG_FORMAT", "%(asctime)s %(levelname)s [%(name)s] %(message)s")
            )
        )

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in ("werkzeug", app.logger.name):
        logger = logging.getLogger(name)
        logger.handlers = []
        logger.setLevel(level)
        logger.propagate = True

    # APScheduler announces every hourly run at INFO.
    logging.getLogger("apscheduler").setLevel(
        _resolve_level(app.config.get("LOG_SCHEDULER_LEVEL"), logging.WARNING)
    )

    app.extensions[LOGGING_EXT_KEY] = True


def init_request_logging(app) -> None:
    """Tag each request with an ``X-Request-ID`` and log its outcome."""

    if app.extensions.get("fx_request_logging"):
        return

    @app.before_request
    def _start_request_logging():
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        g.request_start = time.perf_counter()
        g._request_logged = False

    @app.after_request
    def _log_request(response):
        request_id = getattr(g, "request_id", None)
        if request_id:
            response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        app.logger.log(
            level,
            "Request handled",
            extra=_request_log_extra("request.completed", response.status_code),
        )
        g._request_logged = True
        return response

    @app.teardown_request
    def _log_teardown(exc: BaseException | None):
        if exc is None or getattr(g, "_request_logged", False):
            return
        status = exc.code if isinstance(exc, HTTPException) and exc.code else 500
        app.logger.error(
            "Request failed",
            extra=_request_log_extra("request.failed", status, error=str(exc)),
        )
        g._request_logged = True

    app.extensions["fx_request_logging"] = True


def _request_log_extra(event: str, status: int, error: str | None = None) -> dict[str, Any]:
    start = getattr(g, "request_start", None)
    duration_ms = (time.perf_counter() - start) * 1000 if isinstance(start, float) else None
    payload: dict[str, Any] = {
        "event": event,
        "route": request.url_rule.rule if request.url_rule else request.path,
        "method": request.method,
        "status": status,
        "duration_ms": round(duration_ms, 3) if duration_ms is not None else None,
        "request_id": getattr(g, "request_id", None),
        "source": "api",
        "error": error,
    }
    payload.update(_rate_query_fields())
    return {key: value for key, value in payload.items() if value is not None}


def _rate_query_fields() -> dict[str, Any]:
    """The rate query carried by the request: currencies and the date or range asked for."""

    fields: dict[str, Any] = {}
    for name in _QUERY_FIELDS:
        value = request.args.get(name)
        if not value:
            continue
        if name == "symbols":
            fields[name] = [code.strip().upper() for code in value.split(",") if code.strip()]
        elif name == "base":
            fields[name] = value.strip().upper()
        else:
            fields[name] = value
    day = (request.view_args or {}).get("day")
    if day:
        fields["rate_date"] = day
    return fields


def _resolve_level(value: Any, default: int) -> int:
    if isinstance(value, int):
        return value
    if not value:
        return default
    resolved = logging.getLevelName(str(value).upper())
    return resolved if isinstance(resolved, int) else default


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def feed_log_extra(
    *,
    feed: str,
    event: str,
    status: str,
    duration_ms: float | None,
    error: str | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Structured ``extra`` payload for feed fetches and sync cycle events.

    Cycles triggered through ``POST /rates/sync`` inherit the request's
    correlation ID; scheduled cycles have none.
    """

    payload: dict[str, Any] = {
        "event": event,
        "feed": feed,
        "status": status,
        "duration_ms": round(duration_ms, 3) if duration_ms is not None else None,
        "request_id": getattr(g, "request_id", None) if has_request_context() else None,
        "source": "sync",
        **fields,
        "error": error or None,
    }
    return {key: value for key, value in payload.items() if value is not None}
