from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import date

import pytest
from flask import Flask

from app.logging import JSONLogFormatter, feed_log_extra, init_request_logging, setup_logging


class _MemoryHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@contextmanager
def isolate_logging():
    root = logging.getLogger()
    previous_handlers = root.handlers[:]
    previous_level = root.level
    try:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        yield root
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        for handler in previous_handlers:
            root.addHandler(handler)
        root.setLevel(previous_level)


def test_json_log_formatter_renders_basic_fields():
    formatter = JSONLogFormatter()
    record = logging.LogRecord(
        name="app.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=42,
        msg="Hello %s",
        args=("world",),
        exc_info=None,
    )
    record.request_id = "req-123"

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "Hello world"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "app.test"
    assert "timestamp" in payload
    assert payload["request_id"] == "req-123"


def test_setup_logging_enables_json_formatter_when_configured():
    app = Flask(__name__)
    app.config["LOG_JSON_ENABLED"] = True
    app.config["LOG_LEVEL"] = "DEBUG"

    with isolate_logging():
        setup_logging(app)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert app.logger.level == logging.DEBUG
        assert root.handlers, "Expected handler to be registered on root logger"
        handler = root.handlers[0]
        assert isinstance(handler.formatter, JSONLogFormatter)


def test_setup_logging_uses_plain_formatter_by_default():
    app = Flask(__name__)
    app.config["LOG_JSON_ENABLED"] = False
    app.config["LOG_LEVEL"] = "WARNING"
    app.config["LOG_FORMAT"] = "%(levelname)s:%(message)s"

    with isolate_logging():
        setup_logging(app)
        root = logging.getLogger()
        assert root.level == logging.WARNING
        handler = root.handlers[0]
        assert isinstance(handler.formatter, logging.Formatter)
        assert handler.formatter._style._fmt == "%(levelname)s:%(message)s"


def _make_test_app():
    app = Flask(__name__)
    app.config["TESTING"] = True

    @app.route("/ok")
    def ok():  # pragma: no cover - invoked via test client
        return "ok", 200

    @app.route("/boom")
    def boom():  # pragma: no cover - invoked via test client
        raise RuntimeError("boom")

    return app


def test_request_logging_emits_correlation_fields():
    app = _make_test_app()
    app.config["LOG_JSON_ENABLED"] = False

    with isolate_logging():
        setup_logging(app)
        init_request_logging(app)
        handler = _MemoryHandler()
        handler.setLevel(logging.INFO)
        logging.getLogger().addHandler(handler)
        client = app.test_client()
        response = client.get("/ok")

    records = [record for record in handler.records if record.message == "Request handled"]
    assert records
    record = records[-1]
    assert record.event == "request.completed"
    assert record.method == "GET"
    assert record.status == 200
    assert record.request_id == response.headers["X-Request-ID"]
    assert record.source == "api"
    assert record.duration_ms is not None and record.duration_ms >= 0
    assert record.route in {"/ok", "ok"}


def test_request_logging_captures_errors():
    app = _make_test_app()

    with isolate_logging():
        setup_logging(app)
        init_request_logging(app)
        handler = _MemoryHandler()
        handler.setLevel(logging.INFO)
        logging.getLogger().addHandler(handler)
        client = app.test_client()
        with pytest.raises(RuntimeError):
            client.get("/boom")

    records = [record for record in handler.records if record.message == "Request failed"]
    assert records
    record = records[-1]
    assert record.event == "request.failed"
    assert record.status == 500
    assert record.request_id
    assert record.duration_ms is not None and record.duration_ms >= 0
    assert "boom" in record.error


def test_json_log_formatter_stamps_service_and_stringifies_dates():
    formatter = JSONLogFormatter(service="ecb-reference-rates")
    record = logging.makeLogRecord({"msg": "Stored", "levelname": "INFO", "name": "app.sync"})
    record.rate_date = date(2018, 1, 2)

    payload = json.loads(formatter.format(record))

    assert payload["service"] == "ecb-reference-rates"
    assert payload["rate_date"] == "2018-01-02"


def test_setup_logging_quiets_scheduler_chatter():
    app = Flask(__name__)
    app.config["LOG_LEVEL"] = "DEBUG"
    scheduler_logger = logging.getLogger("apscheduler")
    previous = scheduler_logger.level

    try:
        with isolate_logging():
            setup_logging(app)
        assert scheduler_logger.level == logging.WARNING
    finally:
        scheduler_logger.setLevel(previous)


def test_request_logging_carries_rate_query():
    app = Flask(__name__)
    app.config["TESTING"] = True

    @app.route("/api/v1/<string:day>")
    def by_date(day):  # pragma: no cover - invoked via test client
        return {"date": day}

    with isolate_logging():
        setup_logging(app)
        init_request_logging(app)
        handler = _MemoryHandler()
        handler.setLevel(logging.INFO)
        logging.getLogger().addHandler(handler)
        app.test_client().get(
            "/api/v1/2018-01-02", query_string={"base": "usd", "symbols": "gbp, jpy"}
        )

    record = [record for record in handler.records if record.message == "Request handled"][-1]
    assert record.route == "/api/v1/<string:day>"
    assert record.rate_date == "2018-01-02"
    assert record.base == "USD"
    assert record.symbols == ["GBP", "JPY"]
    assert not hasattr(record, "start_at")


def test_feed_log_extra_drops_empty_fields():
    extra = feed_log_extra(
        feed="ecb",
        event="feed.bulk",
        status="success",
        duration_ms=12.34567,
        inserted=3,
        failed=None,
    )

    assert extra == {
        "event": "feed.bulk",
        "feed": "ecb",
        "status": "success",
        "duration_ms": 12.346,
        "source": "sync",
        "inserted": 3,
    }


def test_sync_cycle_logs_structured_outcome(store):
    from app.services.backfill import Synchronizer
    from tests.factories import FakeFeed, make_record

    with isolate_logging():
        handler = _MemoryHandler()
        handler.setLevel(logging.INFO)
        root = logging.getLogger()
        root.setLevel(logging.INFO)
        root.addHandler(handler)
        Synchronizer(FakeFeed([make_record("2018-01-02")], fail_latest=True), store).run_cycle()

    cycle = [record for record in handler.records if getattr(record, "event", None) == "sync.cycle"]
    assert cycle
    assert cycle[-1].status == "skipped"
    assert cycle[-1].feed == "fake"
    assert "feed is down" in cycle[-1].error
