"""Routes for manually triggered rate synchronization."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from flask import Response, current_app, jsonify

from app.services.backfill import STATUS_BUSY, Synchronizer
from app.services.scheduler import ensure_sync_state, record_sync_report

from . import bp

DEFAULT_THROTTLE_SECONDS = 60


def _throttled(retry_after: int) -> tuple[Response, int]:
    payload = {
        "message": "Sync throttled. Try again later.",
        "retry_after": max(retry_after, 1),
    }
    return jsonify(payload), 429


@bp.post("/sync")
def sync_rates() -> tuple[Response, int]:
    """Run one synchronization cycle now, subject to throttle control."""

    app = current_app
    state = ensure_sync_state(app)
    now = datetime.now(UTC)

    throttle_seconds = max(
        int(app.config.get("REFRESH_THROTTLE_SECONDS", DEFAULT_THROTTLE_SECONDS)), 0
    )
    throttle_until = state.get("throttle_until")
    if (
        throttle_seconds > 0
        and state.get("throttle_window") == throttle_seconds
        and isinstance(throttle_until, datetime)
        and throttle_until > now
    ):
        return _throttled(int((throttle_until - now).total_seconds()))

    synchronizer: Synchronizer | None = app.extensions.get("fx_synchronizer")  # type: ignore[assignment]
    if synchronizer is None:
        return jsonify({"message": "Synchronizer unavailable."}), 503
    if synchronizer.is_running():
        return jsonify({"message": "A sync cycle is already running."}), 409

    report = synchronizer.run_cycle()
    if report.status == STATUS_BUSY:
        return jsonify({"message": "A sync cycle is already running."}), 409

    record_sync_report(app, report)
    if throttle_seconds > 0:
        state["throttle_until"] = now + timedelta(seconds=throttle_seconds)
    else:
        state.pop("throttle_until", None)
    state["throttle_window"] = throttle_seconds

    payload = {"message": f"Sync finished with status '{report.status}'.", "report": report.as_dict()}
    return jsonify(payload), 200
