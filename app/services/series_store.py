"""Date-keyed persistence for daily reference-rate records."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from itertools import islice
from typing import Callable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import InvalidRange
from app.models import RateRecordRow
from app.providers.schemas import RateRecord

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 250


class StoreError(RuntimeError):
    """Raised when the storage backend fails to read or write records."""


@dataclass
class PersistenceResult:
    """How many records a bulk write inserted, skipped as present, or failed."""

    inserted: int = 0
    skipped: int = 0
    failed: list[date] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.inserted + self.skipped + len(self.failed)


class SeriesStore:
    """Ordered store of RateRecords, one row per date.

    Every write commits whole rows, so concurrent readers never observe a
    partially written record. Rows are append-only: a write for a date that
    already exists leaves the stored rates untouched.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreError(str(exc)) from exc
        finally:
            session.close()

    def has(self, day: date) -> bool:
        with self._session() as session:
            stmt = select(RateRecordRow.rate_date).where(RateRecordRow.rate_date == day)
            return session.scalar(stmt) is not None

    def get(self, day: date) -> RateRecord | None:
        with self._session() as session:
            row = session.get(RateRecordRow, day)
            return _to_record(row) if row is not None else None

    def get_range(self, start: date, end: date) -> list[RateRecord]:
        """Return records with ``start <= date <= end`` in ascending date order."""

        if start > end:
            raise InvalidRange(start, end)
        with self._session() as session:
            stmt = (
                select(RateRecordRow)
                .where(RateRecordRow.rate_date >= start, RateRecordRow.rate_date <= end)
                .order_by(RateRecordRow.rate_date)
            )
            return [_to_record(row) for row in session.scalars(stmt)]

    def existing_dates(self, start: date, end: date) -> set[date]:
        """Dates with a stored record in the inclusive range, in one query."""

        if start > end:
            raise InvalidRange(start, end)
        with self._session() as session:
            stmt = select(RateRecordRow.rate_date).where(
                RateRecordRow.rate_date >= start, RateRecordRow.rate_date <= end
            )
            return set(session.scalars(stmt))

    def earliest_date(self) -> date | None:
        with self._session() as session:
            return session.scalar(select(func.min(RateRecordRow.rate_date)))

    def latest_date(self) -> date | None:
        with self._session() as session:
            return session.scalar(select(func.max(RateRecordRow.rate_date)))

    def count(self) -> int:
        with self._session() as session:
            return int(session.scalar(select(func.count()).select_from(RateRecordRow)) or 0)

    def put(self, record: RateRecord) -> bool:
        """Insert ``record`` unless its date is already stored.

        Returns:
            True when a new row was written, False when the date was present.
        """

        with self._session() as session:
            existing = session.get(RateRecordRow, record.date)
            if existing is not None:
                _check_consistency(existing, record)
                return False
            session.add(_to_row(record))
            try:
                session.commit()
            except IntegrityError:
                # Another writer committed the same date first.
                session.rollback()
                return False
            return True

    def put_many(
        self, records: Iterable[RateRecord], chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> PersistenceResult:
        """Write records in chunked transactions, skipping dates already stored.

        A chunk that fails to commit is retried record by record, so one bad
        record only costs itself.
        """

        result = PersistenceResult()
        iterator = iter(records)
        while True:
            chunk = list(islice(iterator, max(chunk_size, 1)))
            if not chunk:
                break
            try:
                self._write_chunk(chunk, result)
            except StoreError as exc:
                logger.warning(
                    "Chunk of %s records starting %s failed (%s); retrying one by one.",
                    len(chunk),
                    chunk[0].date.isoformat(),
                    exc,
                )
                self._write_individually(chunk, result)
        return result

    def _write_chunk(self, chunk: list[RateRecord], result: PersistenceResult) -> None:
        with self._session() as session:
            dates = [record.date for record in chunk]
            present = {
                row.rate_date: row
                for row in session.scalars(
                    select(RateRecordRow).where(RateRecordRow.rate_date.in_(dates))
                )
            }
            fresh: dict[date, RateRecord] = {}
            for record in chunk:
                if record.date in present:
                    _check_consistency(present[record.date], record)
                    continue
                fresh.setdefault(record.date, record)
            session.add_all(_to_row(record) for record in fresh.values())
            session.commit()
            result.inserted += len(fresh)
            result.skipped += len(chunk) - len(fresh)

    def _write_individually(self, chunk: list[RateRecord], result: PersistenceResult) -> None:
        for record in chunk:
            try:
                if self.put(record):
                    result.inserted += 1
                else:
                    result.skipped += 1
            except StoreError as exc:
                logger.error("Failed to store rates for %s: %s", record.date.isoformat(), exc)
                result.failed.append(record.date)


def _to_row(record: RateRecord) -> RateRecordRow:
    return RateRecordRow(rate_date=record.date, base=record.base, rates=dict(record.rates))


def _to_record(row: RateRecordRow) -> RateRecord:
    return RateRecord(date=row.rate_date, base=row.base, rates=row.rates)


def _check_consistency(row: RateRecordRow, record: RateRecord) -> None:
    if row.base != record.base or row.rates != record.rates:
        logger.warning(
            "Upstream rates for %s differ from the stored record; keeping the stored values.",
            record.date.isoformat(),
        )
