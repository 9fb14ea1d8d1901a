"""Abstract interface for upstream daily rate feeds."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from datetime import date

from .schemas import RateRecord


class FeedError(Exception):
    """Raised when an upstream feed cannot fulfill a request."""


class FeedUnavailable(FeedError):
    """Transport or network failure reaching the upstream feed."""


class FeedParseError(FeedError):
    """The upstream feed answered with a malformed payload."""


class BaseRateFeed(ABC):
    """Defines the interface every upstream feed must implement.

    ``fetch_historical`` is expensive; callers are expected to consume it at
    most once per cold start or full backfill. Feeds that can serve a single
    day set ``supports_date_lookup`` and override ``fetch_date``; feeds that
    publish a cheaper trailing window set ``recent_window_days`` and override
    ``fetch_recent``.
    """

    name: str
    base_currency: str = "EUR"
    supports_date_lookup: bool = False
    recent_window_days: int | None = None

    @abstractmethod
    def fetch_latest(self) -> RateRecord:
        """Return the record for the most recent published date."""

    @abstractmethod
    def fetch_historical(self) -> Iterator[RateRecord]:
        """Yield the feed's entire published history, oldest first."""

    def fetch_recent(self) -> Iterator[RateRecord]:
        """Yield the trailing ``recent_window_days`` of history, oldest first."""

        return self.fetch_historical()

    def fetch_date(self, day: date) -> RateRecord | None:
        """Return the record for ``day`` or ``None`` when the feed has none.

        Callers must check ``supports_date_lookup`` first; feeds without it
        raise ``FeedUnavailable``.
        """

        raise FeedUnavailable(f"Feed '{self.name}' has no per-date endpoint")
