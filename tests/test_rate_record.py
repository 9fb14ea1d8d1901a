from __future__ import annotations

from datetime import date, datetime

import pytest

from app.errors import UnknownCurrency
from app.providers.schemas import RateRecord, normalize_symbols
from tests.factories import make_record


def test_rate_record_normalizes_codes_and_drops_own_base():
    record = RateRecord(
        date=datetime(2018, 1, 2, 16, 0),
        base="eur",
        rates={"usd": "1.2065", "EUR": 1, "jpy": 135.35},
    )

    assert record.date == date(2018, 1, 2)
    assert record.base == "EUR"
    assert record.rates == {"USD": 1.2065, "JPY": 135.35}
    assert record.currencies == {"EUR", "USD", "JPY"}


@pytest.mark.parametrize("bad_rate", [0, -1.5, float("nan"), float("inf"), "abc"])
def test_rate_record_rejects_invalid_rates(bad_rate):
    with pytest.raises(ValueError):
        RateRecord(date=date(2018, 1, 2), base="EUR", rates={"USD": bad_rate})


def test_rebase_expresses_rates_against_new_base():
    record = make_record("2018-01-02", USD=1.2, GBP=0.9)

    rebased = record.rebase("usd")

    assert rebased.base == "USD"
    assert rebased.date == record.date
    assert "USD" not in rebased.rates
    assert rebased.rates["EUR"] == pytest.approx(1 / 1.2)
    assert rebased.rates["GBP"] == pytest.approx(0.9 / 1.2)


def test_rebase_round_trip_recovers_original_rates():
    record = make_record("2018-01-02", USD=1.2065, GBP=0.88953, JPY=135.35)

    restored = record.rebase("JPY").rebase("EUR")

    assert restored.base == "EUR"
    assert restored.rates.keys() == record.rates.keys()
    for code, rate in record.rates.items():
        assert restored.rates[code] == pytest.approx(rate, rel=1e-12)


def test_rebase_to_own_base_returns_equal_copy():
    record = make_record("2018-01-02")

    assert record.rebase("EUR") == record


def test_rebase_unknown_currency_raises():
    record = make_record("2018-01-02")

    with pytest.raises(UnknownCurrency) as exc_info:
        record.rebase("XAU")

    assert exc_info.value.codes == ["XAU"]
    assert exc_info.value.status_code == 400


def test_filter_keeps_requested_symbols_in_order():
    record = make_record("2018-01-02", USD=1.2, GBP=0.9, JPY=130.0)

    filtered = record.filter("jpy, usd,JPY")

    assert list(filtered.rates) == ["JPY", "USD"]
    assert filtered.base == "EUR"


def test_filter_reports_every_missing_symbol():
    record = make_record("2018-01-02")

    with pytest.raises(UnknownCurrency) as exc_info:
        record.filter(["USD", "XAU", "ABC"])

    assert exc_info.value.codes == ["ABC", "XAU"]
    assert exc_info.value.payload == {"unknown": ["ABC", "XAU"]}


def test_filter_own_base_yields_unit_rate():
    record = make_record("2018-01-02", USD=1.2)

    filtered = record.filter(["EUR", "USD"])

    assert filtered.rates == {"EUR": 1.0, "USD": 1.2}


def test_select_rebases_then_filters():
    record = make_record("2018-01-02", USD=1.2, GBP=0.9)

    selected = record.select(base="USD", symbols=["EUR"])

    assert selected.as_dict() == {
        "base": "USD",
        "date": "2018-01-02",
        "rates": {"EUR": pytest.approx(1 / 1.2)},
    }


def test_normalize_symbols_skips_blank_entries():
    assert normalize_symbols("usd,, gbp ,") == ["USD", "GBP"]
    assert normalize_symbols([]) == []
