"""Helper factories for building records and scripted feeds in tests."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import date

from app.providers.base import BaseRateFeed, FeedUnavailable
from app.providers.schemas import RateRecord


def make_record(day: str | date, base: str = "EUR", **rates: float) -> RateRecord:
    """Return a record with a small default rate set."""

    if isinstance(day, str):
        day = date.fromisoformat(day)
    return RateRecord(date=day, base=base, rates=rates or {"USD": 1.2, "GBP": 0.9, "JPY": 130.0})


class FakeFeed(BaseRateFeed):
    """Scripted feed serving an in-memory list of records.

    ``fail_latest`` makes ``fetch_latest`` raise; ``fail_dates`` makes
    ``fetch_date`` raise for those days; ``fail_after`` aborts bulk streams
    after that many records.
    """

    name = "fake"

    def __init__(
        self,
        records: Iterable[RateRecord],
        *,
        date_lookup: bool = False,
        recent_window_days: int | None = None,
        recent: Iterable[RateRecord] | None = None,
        fail_latest: bool = False,
        fail_dates: Iterable[date] = (),
        fail_after: int | None = None,
    ) -> None:
        self.records = sorted(records, key=lambda record: record.date)
        self.supports_date_lookup = date_lookup
        self.recent_window_days = recent_window_days
        self.recent = sorted(recent, key=lambda record: record.date) if recent is not None else None
        self.fail_latest = fail_latest
        self.fail_dates = set(fail_dates)
        self.fail_after = fail_after
        self.calls: dict[str, int] = {"latest": 0, "historical": 0, "recent": 0, "date": 0}

    def fetch_latest(self) -> RateRecord:
        self.calls["latest"] += 1
        if self.fail_latest:
            raise FeedUnavailable("feed is down")
        return self.records[-1]

    def fetch_historical(self) -> Iterator[RateRecord]:
        self.calls["historical"] += 1
        return self._stream(self.records)

    def fetch_recent(self) -> Iterator[RateRecord]:
        self.calls["recent"] += 1
        return self._stream(self.recent if self.recent is not None else self.records)

    def fetch_date(self, day: date) -> RateRecord | None:
        self.calls["date"] += 1
        if day in self.fail_dates:
            raise FeedUnavailable(f"lookup for {day.isoformat()} failed")
        return next((record for record in self.records if record.date == day), None)

    def _stream(self, records: list[RateRecord]) -> Iterator[RateRecord]:
        for index, record in enumerate(records):
            if self.fail_after is not None and index >= self.fail_after:
                raise FeedUnavailable("connection reset mid-document")
            yield record
