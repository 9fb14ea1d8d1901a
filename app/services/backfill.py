"""Gap detection and backfilling of the stored reference-rate series."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from time import perf_counter
from typing import Any

from app.logging import feed_log_extra
from app.providers.base import BaseRateFeed, FeedError
from app.providers.schemas import RateRecord
from app.services.calendar import BusinessCalendar
from app.services.series_store import DEFAULT_CHUNK_SIZE, PersistenceResult, SeriesStore, StoreError
from app.utils.datetime import utc_now

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_PARTIAL = "partial"
STATUS_SKIPPED = "skipped"
STATUS_BUSY = "busy"


@dataclass
class SyncState:
    """Bookkeeping for one cycle: the dates found missing and what became of them."""

    gaps: list[date] = field(default_factory=list)
    filled: list[date] = field(default_factory=list)
    failed: list[date] = field(default_factory=list)
    absent: list[date] = field(default_factory=list)

    @property
    def pending(self) -> list[date]:
        settled = set(self.filled) | set(self.failed) | set(self.absent)
        return [day for day in self.gaps if day not in settled]


@dataclass
class SyncReport:
    """Outcome of a single synchronization cycle."""

    started_at: datetime
    status: str = STATUS_OK
    finished_at: datetime | None = None
    cold_start: bool = False
    latest_date: date | None = None
    gaps_found: int = 0
    filled: int = 0
    failed: list[date] = field(default_factory=list)
    absent: list[date] = field(default_factory=list)
    pending: list[date] = field(default_factory=list)
    duration_ms: float | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "cold_start": self.cold_start,
            "latest_date": self.latest_date.isoformat() if self.latest_date else None,
            "gaps_found": self.gaps_found,
            "filled": self.filled,
            "failed": [day.isoformat() for day in self.failed],
            "absent": [day.isoformat() for day in self.absent],
            "pending": [day.isoformat() for day in self.pending],
            "duration_ms": round(self.duration_ms, 3) if self.duration_ms is not None else None,
            "error": self.error,
        }


@dataclass
class _StreamSpan:
    first: date | None = None
    last: date | None = None
    result: PersistenceResult | None = None

    def observe(self, day: date) -> None:
        if self.first is None or day < self.first:
            self.first = day
        if self.last is None or day > self.last:
            self.last = day

    def covers(self, day: date) -> bool:
        return self.first is not None and self.last is not None and self.first <= day <= self.last


class Synchronizer:
    """Keeps the Series Store consistent with the upstream feed.

    Cold start and the hourly recheck are the same algorithm: compute the gap
    set between the upstream bounds and fill it. An empty store simply means
    every published date is a gap, which is served by one historical download.
    Only one cycle runs at a time; a tick arriving mid-cycle is skipped.
    """

    def __init__(
        self,
        feed: BaseRateFeed,
        store: SeriesStore,
        calendar: BusinessCalendar | None = None,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._feed = feed
        self._store = store
        self._calendar = calendar or BusinessCalendar()
        self._chunk_size = chunk_size
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._cold_start_pending = False
        self._upstream_earliest: date | None = None
        self._feed_absent: set[date] = set()
        self.last_report: SyncReport | None = None

    @property
    def feed(self) -> BaseRateFeed:
        return self._feed

    @property
    def upstream_earliest(self) -> date | None:
        return self._upstream_earliest

    @property
    def feed_absent(self) -> frozenset[date]:
        return frozenset(self._feed_absent)

    def is_running(self) -> bool:
        return self._lock.locked()

    def is_ready(self) -> bool:
        """False until a cold start begun in this process has completed."""

        if self._ready.is_set():
            return True
        if self._cold_start_pending:
            return False
        try:
            return self._store.latest_date() is not None
        except StoreError:
            return False

    def detect_gaps(self, start: date, end: date) -> list[date]:
        """Business days in ``[start, end]`` with no stored record."""

        if start > end:
            return []
        present = self._store.existing_dates(start, end)
        return [
            day
            for day in self._calendar.business_days(start, end)
            if day not in present and day not in self._feed_absent
        ]

    def run_cycle(self) -> SyncReport:
        """Run one synchronization cycle unless another is already in flight."""

        if not self._lock.acquire(blocking=False):
            logger.info(
                "Sync cycle already in progress; skipping this tick.",
                extra=feed_log_extra(
                    feed=self._feed.name, event="sync.cycle", status=STATUS_BUSY, duration_ms=None
                ),
            )
            now = utc_now()
            return SyncReport(started_at=now, finished_at=now, status=STATUS_BUSY)
        try:
            report = self._run_cycle()
        finally:
            self._lock.release()
        self.last_report = report
        return report

    def backfill_history(self) -> SyncReport:
        """Re-read the full history and write every date the store lacks.

        Forgets previously confirmed feed-absent dates so they are re-checked.
        """

        if not self._lock.acquire(blocking=False):
            now = utc_now()
            return SyncReport(started_at=now, finished_at=now, status=STATUS_BUSY)
        try:
            report = SyncReport(started_at=utc_now())
            started = perf_counter()
            self._feed_absent.clear()
            state = SyncState()
            try:
                before = self._store.count()
                completed = self._backfill_from(self._feed.fetch_historical, None, state)
                inserted = self._store.count() - before
            except StoreError as exc:
                logger.error("Series store unavailable, aborting backfill: %s", exc)
                report.error = str(exc)
                report = self._finish(report, state, STATUS_SKIPPED, started)
            else:
                if completed:
                    self._cold_start_pending = False
                    self._ready.set()
                status = STATUS_OK if completed and not state.failed else STATUS_PARTIAL
                report = self._finish(report, state, status, started)
                report.filled = inserted
        finally:
            self._lock.release()
        self.last_report = report
        return report

    def _run_cycle(self) -> SyncReport:
        report = SyncReport(started_at=utc_now())
        started = perf_counter()

        try:
            latest = self._feed.fetch_latest()
        except FeedError as exc:
            logger.warning(
                "Feed unavailable, skipping sync cycle: %s",
                exc,
                extra=feed_log_extra(
                    feed=self._feed.name,
                    event="feed.latest",
                    status="error",
                    duration_ms=(perf_counter() - started) * 1000,
                    error=str(exc),
                ),
            )
            report.error = str(exc)
            return self._finish(report, SyncState(), STATUS_SKIPPED, started)
        report.latest_date = latest.date

        try:
            earliest = self._resolve_earliest()
            if earliest is None:
                self._cold_start_pending = True
                report.cold_start = True
                gaps = None
            else:
                gaps = [day for day in self.detect_gaps(earliest, latest.date) if day != latest.date]
        except StoreError as exc:
            logger.error("Series store unavailable, skipping sync cycle: %s", exc)
            report.error = str(exc)
            return self._finish(report, SyncState(), STATUS_SKIPPED, started)

        state = SyncState(gaps=list(gaps or []))
        try:
            if gaps is None:
                logger.info("Series store is empty; loading the full feed history.")
                completed = self._backfill_from(self._feed.fetch_historical, None, state)
            elif gaps:
                logger.info(
                    "Detected %s missing date(s) between %s and %s.",
                    len(gaps),
                    gaps[0].isoformat(),
                    gaps[-1].isoformat(),
                )
                completed = self._fill_gaps(gaps, latest.date, state)
            else:
                completed = True
        except StoreError as exc:
            logger.error("Series store failed while filling gaps: %s", exc)
            report.error = str(exc)
            completed = False

        # Written last: a store holding only the newest day would hide the history gap on restart.
        self._store_latest(latest, state)

        if completed:
            self._cold_start_pending = False
            self._ready.set()
        settled = completed and not state.failed and not state.pending
        status = STATUS_OK if settled else STATUS_PARTIAL
        return self._finish(report, state, status, started)

    def _resolve_earliest(self) -> date | None:
        stored = self._store.earliest_date()
        if stored is None:
            return None
        if self._upstream_earliest is None:
            self._upstream_earliest = stored
        return self._upstream_earliest

    def _fill_gaps(self, gaps: list[date], upstream_latest: date, state: SyncState) -> bool:
        if self._feed.supports_date_lookup:
            self._fill_by_lookup(gaps, state)
            return True

        window = self._feed.recent_window_days
        if window and gaps[0] >= upstream_latest - timedelta(days=window):
            if not self._backfill_from(self._feed.fetch_recent, gaps, state, covers_before=False):
                return False
            older = state.pending
            if not older:
                return True
            logger.info(
                "%s gap(s) precede the recent document; falling back to the full history.", len(older)
            )
            return self._backfill_from(self._feed.fetch_historical, older, state)

        return self._backfill_from(self._feed.fetch_historical, gaps, state)

    def _fill_by_lookup(self, gaps: Iterable[date], state: SyncState) -> None:
        for day in gaps:
            try:
                record = self._feed.fetch_date(day)
            except FeedError as exc:
                logger.warning("Fetching rates for %s failed: %s", day.isoformat(), exc)
                state.failed.append(day)
                continue

            if record is None:
                state.absent.append(day)
                self._feed_absent.add(day)
                continue

            try:
                self._store.put(record)
            except StoreError as exc:
                logger.error("Storing rates for %s failed: %s", day.isoformat(), exc)
                state.failed.append(day)
                continue
            state.filled.append(day)

    def _backfill_from(
        self,
        fetch: Callable[[], Iterator[RateRecord]],
        gaps: list[date] | None,
        state: SyncState,
        *,
        covers_before: bool = True,
    ) -> bool:
        """Stream a bulk document into the store, keeping only ``gaps`` (or everything).

        Returns False when the feed failed before the document was consumed.
        Calendar days inside the document's span that it does not contain are
        remembered as feed-absent; with ``covers_before`` so are gaps older
        than the document's first day.
        """

        wanted = None if gaps is None else set(gaps)
        span = _StreamSpan()
        started = perf_counter()

        def selected() -> Iterator[RateRecord]:
            for record in fetch():
                span.observe(record.date)
                if wanted is None or record.date in wanted:
                    yield record

        try:
            span.result = self._store.put_many(selected(), chunk_size=self._chunk_size)
        except FeedError as exc:
            logger.warning(
                "Bulk feed download failed: %s",
                exc,
                extra=feed_log_extra(
                    feed=self._feed.name,
                    event="feed.bulk",
                    status="error",
                    duration_ms=(perf_counter() - started) * 1000,
                    error=str(exc),
                ),
            )
            self._collect_written(gaps, span, state)
            return False

        if span.first is None:
            logger.warning("Bulk feed document contained no records.")
            return False

        if gaps is None and self._upstream_earliest is None:
            self._upstream_earliest = span.first

        failed = set(span.result.failed)
        state.failed.extend(sorted(failed))
        written = self._collect_written(gaps, span, state, exclude=failed)

        if gaps is None:
            candidates = [
                day for day in self._calendar.business_days(span.first, span.last) if day not in written
            ]
            state.gaps = sorted(written | set(candidates))
        else:
            candidates = [day for day in gaps if day not in written and day not in failed]

        for day in candidates:
            if day in failed:
                continue
            if span.covers(day) or (covers_before and day < span.first):
                state.absent.append(day)
                self._feed_absent.add(day)

        logger.info(
            "Bulk backfill wrote %s record(s)",
            span.result.inserted,
            extra=feed_log_extra(
                feed=self._feed.name,
                event="feed.bulk",
                status="success",
                duration_ms=(perf_counter() - started) * 1000,
                inserted=span.result.inserted,
                skipped=span.result.skipped,
                failed=len(failed),
            ),
        )
        return True

    def _collect_written(
        self,
        gaps: list[date] | None,
        span: _StreamSpan,
        state: SyncState,
        exclude: set[date] | None = None,
    ) -> set[date]:
        if gaps is None:
            if span.first is None:
                return set()
            written = self._store.existing_dates(span.first, span.last)
        else:
            if not gaps:
                return set()
            present = self._store.existing_dates(min(gaps), max(gaps))
            written = {day for day in gaps if day in present}
        written -= exclude or set()
        already = set(state.filled)
        state.filled.extend(sorted(day for day in written if day not in already))
        return written

    def _store_latest(self, latest: RateRecord, state: SyncState) -> None:
        try:
            if self._store.put(latest):
                state.filled.append(latest.date)
        except StoreError as exc:
            logger.error("Storing latest rates for %s failed: %s", latest.date.isoformat(), exc)
            state.failed.append(latest.date)

    def _finish(
        self, report: SyncReport, state: SyncState, status: str, started: float
    ) -> SyncReport:
        report.status = status
        report.finished_at = utc_now()
        report.duration_ms = (perf_counter() - started) * 1000
        report.gaps_found = len(state.gaps)
        report.filled = len(set(state.filled))
        report.failed = sorted(set(state.failed))
        report.absent = sorted(set(state.absent))
        report.pending = state.pending
        logger.info(
            "Sync cycle finished with status '%s': %s filled, %s failed, %s pending.",
            status,
            report.filled,
            len(report.failed),
            len(report.pending),
            extra=feed_log_extra(
                feed=self._feed.name,
                event="sync.cycle",
                status=status,
                duration_ms=report.duration_ms,
                error=report.error,
                cold_start=report.cold_start,
                latest_date=report.latest_date.isoformat() if report.latest_date else None,
            ),
        )
        return report


def run_backfill() -> SyncReport:
    """Run a full historical backfill using the synchronizer attached to the app."""

    from flask import current_app

    synchronizer: Synchronizer | None = current_app.extensions.get("fx_synchronizer")
    if synchronizer is None:
        raise RuntimeError("Synchronizer is not initialised")
    return synchronizer.backfill_history()


def run_sync_cycle() -> SyncReport:
    """Run one gap-detection cycle using the synchronizer attached to the app."""

    from flask import current_app

    synchronizer: Synchronizer | None = current_app.extensions.get("fx_synchronizer")
    if synchronizer is None:
        raise RuntimeError("Synchronizer is not initialised")
    return synchronizer.run_cycle()


def init_synchronizer(app) -> Synchronizer:
    """Create the series store, synchronizer and query engine on the Flask app."""

    from app.database import get_session
    from app.providers.registry import get_feed
    from app.services.query import QueryEngine

    feed = app.extensions.get("rate_feed")
    if feed is None:
        with app.app_context():
            feed = get_feed(app.config.get("FX_RATE_FEED"))

    store = SeriesStore(get_session())
    synchronizer = Synchronizer(
        feed,
        store,
        BusinessCalendar.from_config(app.config),
        chunk_size=int(app.config.get("STORE_CHUNK_SIZE", DEFAULT_CHUNK_SIZE)),
    )
    engine = QueryEngine(
        store,
        native_base=app.config.get("FX_NATIVE_BASE", feed.base_currency),
        is_ready=synchronizer.is_ready,
    )

    app.extensions["fx_series_store"] = store
    app.extensions["fx_synchronizer"] = synchronizer
    app.extensions["fx_query_engine"] = engine
    return synchronizer
