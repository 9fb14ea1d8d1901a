from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from app.services.backfill import Synchronizer
from tests.factories import FakeFeed, make_record


@pytest.fixture()
def synchronizer(client, store):
    feed = FakeFeed([make_record("2018-01-02"), make_record("2018-01-03")])
    sync = Synchronizer(feed, store)
    client.application.extensions["fx_synchronizer"] = sync
    return sync


def test_manual_sync_runs_cycle(client, synchronizer, store):
    response = client.post("/rates/sync")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["report"]["status"] == "ok"
    assert payload["report"]["cold_start"] is True
    assert store.count() == 2

    state = client.application.extensions["fx_sync_state"]
    assert state["last_success"] is not None
    assert state["throttle_until"] > datetime.now(UTC)


def test_manual_sync_is_throttled(client, synchronizer):
    client.application.extensions["fx_sync_state"] = {
        "throttle_until": datetime.now(UTC) + timedelta(seconds=30),
        "throttle_window": 60,
    }

    response = client.post("/rates/sync")

    assert response.status_code == 429
    assert 1 <= response.get_json()["retry_after"] <= 30


def test_manual_sync_conflicts_with_running_cycle(client, synchronizer):
    synchronizer._lock.acquire()
    try:
        response = client.post("/rates/sync")
    finally:
        synchronizer._lock.release()

    assert response.status_code == 409


def test_manual_sync_respects_zero_throttle(client, synchronizer):
    app = client.application
    app.config["REFRESH_THROTTLE_SECONDS"] = 0
    try:
        first = client.post("/rates/sync")
        second = client.post("/rates/sync")
    finally:
        app.config["REFRESH_THROTTLE_SECONDS"] = 60

    assert first.status_code == 200
    assert second.status_code == 200
    assert app.extensions["fx_sync_state"].get("throttle_until") is None


def test_manual_sync_reports_skipped_cycle(client, store):
    sync = Synchronizer(FakeFeed([make_record("2018-01-02")], fail_latest=True), store)
    client.application.extensions["fx_synchronizer"] = sync

    response = client.post("/rates/sync")

    assert response.status_code == 200
    assert response.get_json()["report"]["status"] == "skipped"
    assert client.application.extensions["fx_sync_state"]["last_failure"] is not None
