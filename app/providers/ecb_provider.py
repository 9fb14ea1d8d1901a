"""ECB eurofxref feed implementation."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from datetime import date
from xml.etree import ElementTree

from app.providers.base import BaseRateFeed, FeedParseError, FeedUnavailable
from app.providers.schemas import RateRecord
from app.utils.datetime import parse_iso_date

from .ecb_client import EcbAPIError, EcbClient, EcbClientConfig

ECB_BASE_CURRENCY = "EUR"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_envelope(payload: bytes, base: str = ECB_BASE_CURRENCY) -> list[RateRecord]:
    """Parse a ``gesmes:Envelope`` document into records sorted oldest first.

    Raises:
        FeedParseError: On malformed XML, dates, rates, or duplicate days.
    """

    if not payload or not payload.strip():
        raise FeedParseError("ECB document is empty")

    try:
        root = ElementTree.fromstring(payload)
    except ElementTree.ParseError as exc:
        raise FeedParseError(f"ECB document is not valid XML: {exc}") from exc

    if _local_name(root.tag) != "Envelope":
        raise FeedParseError(f"Unexpected root element '{_local_name(root.tag)}'")

    records: dict[date, RateRecord] = {}
    for cube in root.iter():
        if _local_name(cube.tag) != "Cube" or "time" not in cube.attrib:
            continue

        raw_day = cube.attrib["time"]
        try:
            day = parse_iso_date(raw_day)
        except ValueError as exc:
            raise FeedParseError(f"Invalid date '{raw_day}' in ECB document") from exc
        if day in records:
            raise FeedParseError(f"Duplicate date {day.isoformat()} in ECB document")

        rates: dict[str, str] = {}
        for entry in cube:
            if _local_name(entry.tag) != "Cube":
                continue
            currency = entry.attrib.get("currency")
            rate = entry.attrib.get("rate")
            if not currency or rate is None:
                raise FeedParseError(f"Incomplete rate entry for {day.isoformat()}: {entry.attrib}")
            rates[currency] = rate

        try:
            records[day] = RateRecord(date=day, base=base, rates=rates)
        except ValueError as exc:
            raise FeedParseError(f"Invalid rates for {day.isoformat()}: {exc}") from exc

    return [records[day] for day in sorted(records)]


class EcbRateFeed(BaseRateFeed):
    """Feed reading the ECB's daily, 90-day and full-history XML documents."""

    name = "ecb"
    base_currency = ECB_BASE_CURRENCY
    recent_window_days = 90

    def __init__(self, client: EcbClient) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: Mapping[str, str | int | float]) -> EcbRateFeed:
        client_config = EcbClientConfig(
            base_url=str(config.get("ECB_FEED_BASE_URL")),
            timeout=float(config.get("REQUEST_TIMEOUT_SECONDS", 30)),
            max_retries=int(config.get("ECB_FEED_MAX_RETRIES", 2)),
            backoff_seconds=float(config.get("ECB_FEED_BACKOFF_SECONDS", 1.0)),
        )
        return cls(EcbClient(client_config))

    def fetch_latest(self) -> RateRecord:
        records = parse_envelope(self._download(self._client.daily), self.base_currency)
        if not records:
            raise FeedParseError("ECB daily document contains no rates")
        return records[-1]

    def fetch_historical(self) -> Iterator[RateRecord]:
        yield from parse_envelope(self._download(self._client.history), self.base_currency)

    def fetch_recent(self) -> Iterator[RateRecord]:
        yield from parse_envelope(self._download(self._client.recent), self.base_currency)

    @staticmethod
    def _download(fetch) -> bytes:
        try:
            return fetch()
        except EcbAPIError as exc:
            raise FeedUnavailable(str(exc)) from exc
