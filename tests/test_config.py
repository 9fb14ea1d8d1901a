from __future__ import annotations

import pytest

import config
from config import TestingConfig, get_config


@pytest.fixture()
def restore_testing_config():
    feed = TestingConfig.FX_RATE_FEED
    calendar = TestingConfig.BUSINESS_CALENDAR
    yield
    TestingConfig.FX_RATE_FEED = feed
    TestingConfig.BUSINESS_CALENDAR = calendar


def test_get_config_resolves_named_environment():
    assert get_config("testing") is TestingConfig
    assert TestingConfig.SCHEDULER_ENABLED is False


def test_get_config_unknown_environment_raises():
    with pytest.raises(KeyError):
        get_config("staging")


def test_feed_alias_is_normalized(restore_testing_config):
    TestingConfig.FX_RATE_FEED = "EuroFXRef"

    assert get_config("testing").FX_RATE_FEED == "ecb"


def test_unsupported_feed_is_rejected(restore_testing_config):
    TestingConfig.FX_RATE_FEED = "bloomberg"

    with pytest.raises(ValueError):
        get_config("testing")


def test_unsupported_calendar_is_rejected(restore_testing_config):
    TestingConfig.BUSINESS_CALENDAR = "lunar"

    with pytest.raises(ValueError):
        get_config("testing")


def test_database_url_falls_back_to_db_location(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("DB_LOCATION", "/tmp/rates.db")

    assert config._database_url() == "sqlite:////tmp/rates.db"

    monkeypatch.setenv("DATABASE_URL", "postgresql://db/rates")
    assert config._database_url() == "postgresql://db/rates"
