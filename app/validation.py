"""Validation helpers for request parameters."""

from __future__ import annotations

from datetime import date

from flask import current_app

from app.errors import ValidationError
from app.providers.schemas import normalize_code, normalize_symbols
from app.utils.datetime import parse_iso_date

DEFAULT_EARLIEST_DATE = "1999-01-04"


def earliest_publication_date() -> date:
    return parse_iso_date(current_app.config.get("FEED_EARLIEST_DATE", DEFAULT_EARLIEST_DATE))


def validate_rate_date(value: str | None, *, field: str = "date") -> date:
    """Parse a ``YYYY-MM-DD`` value no earlier than the feed's first publication."""

    if value is None or not str(value).strip():
        raise ValidationError(f"'{field}' is required.", payload={"field": field})

    try:
        parsed = parse_iso_date(str(value).strip())
    except ValueError:
        raise ValidationError(
            f"Invalid date '{value}'. Use the YYYY-MM-DD format.",
            payload={"field": field},
        ) from None

    earliest = earliest_publication_date()
    if parsed < earliest:
        raise ValidationError(
            f"'{field}' must not be earlier than {earliest.isoformat()}.",
            payload={"field": field},
        )
    return parsed


def validate_currency_code(value: str | None, *, field: str = "base") -> str | None:
    """Normalize an optional currency code; blank means unset."""

    if value is None or not str(value).strip():
        return None
    try:
        return normalize_code(value)
    except ValueError as exc:
        raise ValidationError(str(exc), payload={"field": field}) from None


def validate_symbols(value: str | None, *, field: str = "symbols") -> list[str] | None:
    """Split a comma-separated symbol list; blank means every currency."""

    if value is None or not str(value).strip():
        return None
    try:
        return normalize_symbols(value) or None
    except ValueError as exc:
        raise ValidationError(str(exc), payload={"field": field}) from None
