"""Shared date and datetime helpers."""

from __future__ import annotations

from datetime import UTC, date, datetime


def utc_now() -> datetime:
    """Return the current UTC datetime."""

    return datetime.now(UTC)


def utc_today() -> date:
    """Return the current calendar date in UTC."""

    return utc_now().date()


def parse_iso_date(value: str | date) -> date:
    """Parse a ``YYYY-MM-DD`` string; dates are returned unchanged.

    Raises:
        ValueError: If the string is not a valid ISO calendar date.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()
