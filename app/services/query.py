"""Read-side queries over the stored reference-rate series."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date

from app.errors import DateNotFound, InvalidRange, NoData, UnknownCurrency
from app.providers.schemas import RateRecord, normalize_code, normalize_symbols
from app.services.series_store import SeriesStore

NO_DATA_MESSAGE = "Reference rates are not available yet; initial synchronization is in progress."


class QueryEngine:
    """Answers latest, by-date and history queries, rebasing and filtering on the way out.

    Stored records are never mutated; every answer is a derived copy.
    """

    def __init__(
        self,
        store: SeriesStore,
        native_base: str = "EUR",
        is_ready: Callable[[], bool] | None = None,
    ) -> None:
        self._store = store
        self._native_base = normalize_code(native_base)
        self._is_ready = is_ready or (lambda: store.latest_date() is not None)

    @property
    def native_base(self) -> str:
        return self._native_base

    def latest(self, base: str | None = None, symbols: Iterable[str] | str | None = None) -> RateRecord:
        self._ensure_ready()
        day = self._store.latest_date()
        record = self._store.get(day) if day is not None else None
        if record is None:
            raise NoData(NO_DATA_MESSAGE)
        return record.select(base or self._native_base, symbols)

    def by_date(
        self,
        day: date,
        base: str | None = None,
        symbols: Iterable[str] | str | None = None,
    ) -> RateRecord:
        """Return the record published on exactly ``day``.

        Raises:
            NoData: While the initial load has not completed.
            DateNotFound: If nothing was published on ``day``.
        """

        self._ensure_ready()
        record = self._store.get(day)
        if record is None:
            raise DateNotFound(day)
        return record.select(base or self._native_base, symbols)

    def history(
        self,
        start: date,
        end: date,
        base: str | None = None,
        symbols: Iterable[str] | str | None = None,
    ) -> dict[date, dict[str, float]]:
        """Return ``{date: rates}`` for every stored date in ``[start, end]``, ascending.

        An empty mapping is a valid answer for a range with no publications.
        ``base`` and ``symbols`` are validated against the union of currencies
        seen across the range; a date missing the base is omitted, and a symbol
        missing on one date is omitted for that date only.
        """

        if start > end:
            raise InvalidRange(start, end)
        self._ensure_ready()

        records = self._store.get_range(start, end)
        target = normalize_code(base) if base else self._native_base
        wanted = normalize_symbols(symbols) if symbols else []

        if records:
            seen = frozenset().union(*(record.currencies for record in records))
            unknown = [code for code in [target, *wanted] if code not in seen]
            if unknown:
                raise UnknownCurrency(unknown)

        series: dict[date, dict[str, float]] = {}
        for record in records:
            if not record.has_currency(target):
                continue
            rebased = record.rebase(target)
            if wanted:
                present = [code for code in wanted if rebased.has_currency(code)]
                rebased = rebased.filter(present)
            series[record.date] = dict(rebased.rates)
        return series

    def _ensure_ready(self) -> None:
        if not self._is_ready():
            raise NoData(NO_DATA_MESSAGE)
