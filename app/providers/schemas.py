"""Dataclasses describing normalized daily reference-rate records."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict

from app.errors import UnknownCurrency


def normalize_code(code: str) -> str:
    """Normalize a currency code to canonical upper-case form."""

    if code is None or not str(code).strip():
        raise ValueError("Currency code cannot be blank.")
    normalized = str(code).strip().upper()
    if not normalized.isascii():
        raise ValueError(f"Currency code must be ASCII: {code!r}")
    return normalized


def normalize_symbols(symbols: Iterable[str] | str) -> list[str]:
    """Split, upper-case and de-duplicate a symbol list, preserving order.

    Accepts either an iterable of codes or a comma-separated string; blank
    entries are ignored.
    """

    if isinstance(symbols, str):
        symbols = symbols.split(",")
    seen: dict[str, None] = {}
    for symbol in symbols:
        if symbol is None or not str(symbol).strip():
            continue
        seen.setdefault(normalize_code(symbol), None)
    return list(seen)


def _normalize_rates(rates: Mapping[str, float | int | str]) -> Dict[str, float]:
    normalized: Dict[str, float] = {}
    for code, value in rates.items():
        rate = float(value)
        if not math.isfinite(rate) or rate <= 0:
            raise ValueError(f"Rate for {code!r} must be a positive number, got {value!r}")
        normalized[normalize_code(code)] = rate
    return normalized


@dataclass(frozen=True)
class RateRecord:
    """One day's published rates against a single base currency.

    ``rates`` never contains ``base`` itself; the base is implicitly 1.0.
    """

    date: date
    base: str
    rates: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.date, datetime):
            object.__setattr__(self, "date", self.date.date())
        if not isinstance(self.date, date):
            raise TypeError("date must be a datetime.date instance")
        base = normalize_code(self.base)
        rates = _normalize_rates(self.rates)
        rates.pop(base, None)
        object.__setattr__(self, "base", base)
        object.__setattr__(self, "rates", rates)

    @property
    def currencies(self) -> frozenset[str]:
        """All codes this record can express, including its base."""

        return frozenset(self.rates) | {self.base}

    def has_currency(self, code: str) -> bool:
        return normalize_code(code) in self.currencies

    def rebase(self, target: str) -> RateRecord:
        """Return a copy expressed against ``target`` as the unit of account.

        Raises:
            UnknownCurrency: If ``target`` is neither the base nor a listed rate.
        """

        new_base = normalize_code(target)
        if new_base == self.base:
            return RateRecord(date=self.date, base=self.base, rates=dict(self.rates))

        try:
            pivot = self.rates[new_base]
        except KeyError:
            raise UnknownCurrency([new_base]) from None

        rebased = {code: rate / pivot for code, rate in self.rates.items() if code != new_base}
        rebased[self.base] = 1 / pivot
        return RateRecord(date=self.date, base=new_base, rates=rebased)

    def filter(self, symbols: Iterable[str] | str) -> RateRecord:
        """Return a copy retaining only ``symbols``.

        Requesting the record's own base yields a 1.0 entry. Nothing is
        silently dropped: every absent code is reported at once.

        Raises:
            UnknownCurrency: Listing every requested code absent from the record.
        """

        wanted = normalize_symbols(symbols)
        missing = [code for code in wanted if code not in self.currencies]
        if missing:
            raise UnknownCurrency(missing)

        # Built directly: the base entry would be stripped by __post_init__.
        selected = {code: (1.0 if code == self.base else self.rates[code]) for code in wanted}
        record = RateRecord(date=self.date, base=self.base)
        object.__setattr__(record, "rates", selected)
        return record

    def select(self, base: str | None = None, symbols: Iterable[str] | str | None = None) -> RateRecord:
        """Rebase to ``base`` (if given) then keep ``symbols`` (if given)."""

        record = self.rebase(base) if base else self
        if symbols:
            wanted = normalize_symbols(symbols)
            if wanted:
                record = record.filter(wanted)
        return record

    def as_dict(self) -> dict[str, Any]:
        return {
            "base": self.base,
            "date": self.date.isoformat(),
            "rates": dict(self.rates),
        }
