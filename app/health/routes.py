"""Route handlers for health checks."""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from flask.views import MethodView

from app.schemas import HealthRatesSchema, HealthStatusSchema
from app.services.backfill import Synchronizer
from app.services.scheduler import ensure_sync_state
from app.services.series_store import SeriesStore, StoreError

from . import blp


def _isoformat(value) -> str | None:
    return value.isoformat() if isinstance(value, datetime) else None


@blp.route("")
class HealthStatus(MethodView):
    @blp.response(200, HealthStatusSchema())
    def get(self):
        return {
            "status": "ok",
            "app": current_app.config.get("APP_NAME", "ecb-reference-rates"),
        }


@blp.route("/rates")
class HealthRates(MethodView):
    @blp.response(200, HealthRatesSchema())
    def get(self):
        synchronizer: Synchronizer | None = current_app.extensions.get("fx_synchronizer")  # type: ignore[assignment]
        store: SeriesStore | None = current_app.extensions.get("fx_series_store")  # type: ignore[assignment]
        state = ensure_sync_state(current_app)

        payload = {
            "status": "uninitialized",
            "ready": False,
            "feed": synchronizer.feed.name if synchronizer else None,
            "base": current_app.config.get("FX_NATIVE_BASE", "EUR"),
            "earliest_date": None,
            "latest_date": None,
            "records": None,
            "sync_running": synchronizer.is_running() if synchronizer else False,
            "last_success": _isoformat(state.get("last_success")),
            "last_failure": _isoformat(state.get("last_failure")),
            "last_report": state.get("last_report"),
        }
        if synchronizer is None or store is None:
            return payload

        try:
            earliest = store.earliest_date()
            latest = store.latest_date()
            payload["records"] = store.count()
        except StoreError:
            payload["status"] = "degraded"
            return payload

        payload["earliest_date"] = earliest.isoformat() if earliest else None
        payload["latest_date"] = latest.isoformat() if latest else None
        payload["ready"] = synchronizer.is_ready()
        payload["status"] = "ok" if payload["ready"] else "loading"
        return payload
