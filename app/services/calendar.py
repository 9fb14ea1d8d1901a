"""Business-day calendar deciding which dates the feed is expected to publish."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from datetime import date, timedelta

from app.errors import InvalidRange
from app.utils.datetime import parse_iso_date

HolidayRule = Callable[[int], Iterable[date]]


def easter_sunday(year: int) -> date:
    """Gregorian Easter Sunday (anonymous Gregorian algorithm)."""

    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7  # noqa: E741
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def target_holidays(year: int) -> list[date]:
    """TARGET2 closing days on which no reference rates are published."""

    easter = easter_sunday(year)
    return [
        date(year, 1, 1),
        easter - timedelta(days=2),
        easter + timedelta(days=1),
        date(year, 5, 1),
        date(year, 12, 25),
        date(year, 12, 26),
    ]


HOLIDAY_RULES: dict[str, tuple[HolidayRule, ...]] = {
    "target": (target_holidays,),
    "weekdays": (),
}


class BusinessCalendar:
    """Weekdays minus the holidays produced by the injected rules and extras."""

    def __init__(
        self,
        rules: Iterable[HolidayRule] = (target_holidays,),
        extra_holidays: Iterable[date] = (),
    ) -> None:
        self._rules = tuple(rules)
        self._extra = frozenset(extra_holidays)
        self._by_year: dict[int, frozenset[date]] = {}

    @classmethod
    def from_config(cls, config) -> BusinessCalendar:
        name = str(config.get("BUSINESS_CALENDAR", "target")).strip().lower()
        try:
            rules = HOLIDAY_RULES[name]
        except KeyError as exc:
            raise ValueError(f"Unknown business calendar '{name}'") from exc
        return cls(rules=rules, extra_holidays=parse_holiday_list(config.get("EXTRA_HOLIDAYS", "")))

    def holidays(self, year: int) -> frozenset[date]:
        cached = self._by_year.get(year)
        if cached is None:
            days = {day for rule in self._rules for day in rule(year)}
            days.update(day for day in self._extra if day.year == year)
            cached = self._by_year[year] = frozenset(days)
        return cached

    def is_business_day(self, day: date) -> bool:
        return day.weekday() < 5 and day not in self.holidays(day.year)

    def business_days(self, start: date, end: date) -> Iterator[date]:
        """Yield business days in ``[start, end]`` ascending.

        Raises:
            InvalidRange: If ``start`` is after ``end``.
        """

        if start > end:
            raise InvalidRange(start, end)
        day = start
        while day <= end:
            if self.is_business_day(day):
                yield day
            day += timedelta(days=1)


def parse_holiday_list(raw: str | Iterable[str | date] | None) -> list[date]:
    """Parse a comma-separated (or iterable) list of ISO dates, ignoring blanks."""

    if not raw:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    days: list[date] = []
    for item in items:
        if isinstance(item, str) and not item.strip():
            continue
        try:
            days.append(parse_iso_date(item))
        except ValueError as exc:
            raise ValueError(f"Invalid holiday date {item!r}; expected YYYY-MM-DD") from exc
    return days
