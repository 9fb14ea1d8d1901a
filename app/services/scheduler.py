"""Scheduler setup for the periodic gap-detection cycle."""

from __future__ import annotations

import atexit
import logging
from datetime import UTC, datetime
from typing import Any, cast

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from flask import Flask

from app.services.backfill import STATUS_OK, STATUS_PARTIAL, Synchronizer

logger = logging.getLogger(__name__)

SCHEDULER_EXT_KEY = "apscheduler"
SYNC_STATE_KEY = "fx_sync_state"
SYNC_JOB_ID = "sync_rates"


def ensure_sync_state(app: Flask) -> dict[str, Any]:
    """Ensure sync state dict exists on app extensions."""
    state = app.extensions.setdefault(SYNC_STATE_KEY, {})
    if not isinstance(state, dict):
        new_state: dict[str, Any] = {}
        app.extensions[SYNC_STATE_KEY] = new_state
        return new_state
    return state


def record_sync_report(app: Flask, report) -> None:
    """Remember the outcome of a cycle for the health endpoints."""

    state = ensure_sync_state(app)
    state["last_report"] = report.as_dict()
    if report.status in (STATUS_OK, STATUS_PARTIAL):
        state["last_success"] = report.finished_at or datetime.now(UTC)
    else:
        state["last_failure"] = report.finished_at or datetime.now(UTC)


def _run_sync(app) -> None:
    with app.app_context():
        synchronizer = cast(Synchronizer | None, app.extensions.get("fx_synchronizer"))
        if synchronizer is None:
            logger.warning("No synchronizer configured; skipping scheduled sync.")
            return

        try:
            report = synchronizer.run_cycle()
        except Exception:  # noqa: BLE001
            # A crashed tick must not stop the scheduler; the next tick recomputes gaps.
            ensure_sync_state(app)["last_failure"] = datetime.now(UTC)
            logger.exception("Scheduled sync cycle failed unexpectedly.")
            return
        if report.status != "busy":
            record_sync_report(app, report)


def init_scheduler(app) -> BackgroundScheduler | None:
    """Initialise APScheduler with the periodic sync job if enabled.

    The first run fires immediately so a cold start begins at boot.
    """

    ensure_sync_state(app)

    if not app.config.get("SCHEDULER_ENABLED", True):
        logger.info("Scheduler disabled via configuration.")
        return None

    if app.extensions.get(SCHEDULER_EXT_KEY):
        return app.extensions[SCHEDULER_EXT_KEY]

    timezone = app.config.get("SCHEDULER_TIMEZONE", "UTC")
    interval = int(app.config.get("SYNC_INTERVAL_SECONDS", 3600))
    scheduler = BackgroundScheduler(timezone=timezone)
    scheduler.add_job(
        _run_sync,
        trigger=IntervalTrigger(seconds=interval, timezone=timezone),
        args=[app],
        id=SYNC_JOB_ID,
        replace_existing=True,
        next_run_time=datetime.now(UTC),
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()

    app.extensions[SCHEDULER_EXT_KEY] = scheduler
    atexit.register(shutdown_scheduler, app)

    logger.info("APScheduler started; syncing every %s seconds", interval)
    return scheduler


def shutdown_scheduler(app) -> None:
    sched = app.extensions.get(SCHEDULER_EXT_KEY)
    if sched and getattr(sched, "running", False):
        sched.shutdown(wait=False)
