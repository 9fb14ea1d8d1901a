"""Route handlers for latest, by-date and history rate queries."""

from __future__ import annotations

from flask import current_app
from flask.views import MethodView

from app.errors import NoData
from app.schemas import HistoryQuerySchema, HistoryResponseSchema, RatesQuerySchema, RatesResponseSchema
from app.services.query import QueryEngine
from app.validation import validate_currency_code, validate_rate_date, validate_symbols

from . import blp


def _engine() -> QueryEngine:
    engine: QueryEngine | None = current_app.extensions.get("fx_query_engine")  # type: ignore[assignment]
    if engine is None:
        raise NoData("Query engine unavailable.")
    return engine


def _selection(query_params) -> tuple[str | None, list[str] | None]:
    return (
        validate_currency_code(query_params.get("base"), field="base"),
        validate_symbols(query_params.get("symbols"), field="symbols"),
    )


@blp.route("/latest")
class LatestRates(MethodView):
    @blp.arguments(RatesQuerySchema, location="query")
    @blp.response(200, RatesResponseSchema())
    def get(self, query_params):
        base, symbols = _selection(query_params)
        return _engine().latest(base=base, symbols=symbols).as_dict()


@blp.route("/history")
class RateHistory(MethodView):
    @blp.arguments(HistoryQuerySchema, location="query")
    @blp.response(200, HistoryResponseSchema())
    def get(self, query_params):
        start = validate_rate_date(query_params.get("start_at"), field="start_at")
        end = validate_rate_date(query_params.get("end_at"), field="end_at")
        base, symbols = _selection(query_params)

        engine = _engine()
        series = engine.history(start, end, base=base, symbols=symbols)
        return {
            "base": base or engine.native_base,
            "start_at": start.isoformat(),
            "end_at": end.isoformat(),
            "rates": {day.isoformat(): rates for day, rates in series.items()},
        }


@blp.route("/<string:day>")
class RatesByDate(MethodView):
    @blp.arguments(RatesQuerySchema, location="query")
    @blp.response(200, RatesResponseSchema())
    def get(self, query_params, day: str):
        requested = validate_rate_date(day, field="date")
        base, symbols = _selection(query_params)
        return _engine().by_date(requested, base=base, symbols=symbols).as_dict()
