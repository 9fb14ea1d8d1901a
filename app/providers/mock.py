"""Mock feed implementation for testing and local development."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta

from app.utils.datetime import utc_today

from .base import BaseRateFeed
from .schemas import RateRecord

MOCK_RATES: dict[str, float] = {
    "USD": 1.10,
    "GBP": 0.86,
    "JPY": 160.12,
    "CHF": 0.95,
}


class MockRateFeed(BaseRateFeed):
    """Deterministic feed publishing synthetic rates on every weekday.

    Rates drift gently with the day offset so consecutive records differ.
    """

    name = "mock"
    base_currency = "EUR"
    supports_date_lookup = True

    def __init__(self, start: date | None = None, end: date | None = None) -> None:
        self._end = end
        self._start = start

    @property
    def end(self) -> date:
        end = self._end or utc_today()
        while end.weekday() >= 5:
            end -= timedelta(days=1)
        return end

    @property
    def start(self) -> date:
        return self._start or self.end - timedelta(days=30)

    def fetch_latest(self) -> RateRecord:
        return self._record(self.end)

    def fetch_historical(self) -> Iterator[RateRecord]:
        day = self.start
        while day <= self.end:
            if day.weekday() < 5:
                yield self._record(day)
            day += timedelta(days=1)

    def fetch_date(self, day: date) -> RateRecord | None:
        if day.weekday() >= 5 or not self.start <= day <= self.end:
            return None
        return self._record(day)

    def _record(self, day: date) -> RateRecord:
        offset = (day.toordinal() % 7) - 3
        rates = {code: round(rate * (1 + offset / 1000), 6) for code, rate in MOCK_RATES.items()}
        return RateRecord(date=day, base=self.base_currency, rates=rates)
