from __future__ import annotations

from app.services.backfill import Synchronizer
from tests.factories import FakeFeed, make_record


def test_sync_rates_command_runs_one_cycle(app, store):
    feed = FakeFeed([make_record("2018-01-02"), make_record("2018-01-03")])
    app.extensions["fx_synchronizer"] = Synchronizer(feed, store)

    result = app.test_cli_runner().invoke(args=["sync-rates"])

    assert result.exit_code == 0
    assert "Status: ok" in result.output
    assert store.count() == 2


def test_sync_rates_command_fails_when_feed_is_down(app, store):
    feed = FakeFeed([make_record("2018-01-02")], fail_latest=True)
    app.extensions["fx_synchronizer"] = Synchronizer(feed, store)

    result = app.test_cli_runner().invoke(args=["sync-rates"])

    assert result.exit_code == 1
    assert "Status: skipped" in result.output


def test_backfill_rates_command_loads_full_history(app, store):
    store.put(make_record("2018-01-03"))
    feed = FakeFeed([make_record("2018-01-02"), make_record("2018-01-03"), make_record("2018-01-04")])
    app.extensions["fx_synchronizer"] = Synchronizer(feed, store)

    result = app.test_cli_runner().invoke(args=["backfill-rates"])

    assert result.exit_code == 0
    assert "filled: 2" in result.output
    assert "Backfill completed." in result.output
    assert store.count() == 3
