"""Application configuration classes."""

from __future__ import annotations

import os

SUPPORTED_RATE_FEEDS = {"ecb", "eurofxref", "mock"}
FEED_ALIASES = {"eurofxref": "ecb"}
SUPPORTED_CALENDARS = {"target", "weekdays"}


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


def _database_url() -> str:
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit
    return f"sqlite:///{_get_env('DB_LOCATION', 'rates.db')}"


class BaseConfig:
    """Base configuration shared across environments."""

    SCHEDULER_ENABLED = _get_env("SCHEDULER_ENABLED", "true").lower() == "true"
    SYNC_INTERVAL_SECONDS = int(_get_env("SYNC_INTERVAL_SECONDS", "3600"))

    APP_NAME = "ecb-reference-rates"
    SECRET_KEY = _get_env("SECRET_KEY", "change-me")
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SCHEDULER_TIMEZONE = _get_env("SCHEDULER_TIMEZONE", "UTC")
    REQUEST_TIMEOUT_SECONDS = int(_get_env("REQUEST_TIMEOUT_SECONDS", "30"))
    FX_RATE_FEED = _get_env("FX_RATE_FEED", "ecb")
    FX_NATIVE_BASE = _get_env("FX_NATIVE_BASE", "EUR")
    ECB_FEED_BASE_URL = _get_env("ECB_FEED_BASE_URL", "https://www.ecb.europa.eu/stats/eurofxref")
    ECB_FEED_MAX_RETRIES = int(_get_env("ECB_FEED_MAX_RETRIES", "2"))
    ECB_FEED_BACKOFF_SECONDS = float(_get_env("ECB_FEED_BACKOFF_SECONDS", "1.0"))
    FEED_EARLIEST_DATE = _get_env("FEED_EARLIEST_DATE", "1999-01-04")
    BUSINESS_CALENDAR = _get_env("BUSINESS_CALENDAR", "target")
    EXTRA_HOLIDAYS = _get_env("EXTRA_HOLIDAYS", "")
    STORE_CHUNK_SIZE = int(_get_env("STORE_CHUNK_SIZE", "250"))
    REFRESH_THROTTLE_SECONDS = int(_get_env("REFRESH_THROTTLE_SECONDS", "60"))
    LOG_LEVEL = _get_env("LOG_LEVEL", "INFO")
    LOG_JSON_ENABLED = _get_env("LOG_JSON_ENABLED", "false").lower() == "true"
    LOG_FORMAT = _get_env("LOG_FORMAT", "%(asctime)s %(levelname)s [%(name)s] %(message)s")
    LOG_SCHEDULER_LEVEL = _get_env("LOG_SCHEDULER_LEVEL", "WARNING")
    CORS_ALLOWED_ORIGINS = _get_env("CORS_ALLOWED_ORIGINS", "*")
    CORS_ALLOWED_HEADERS = _get_env("CORS_ALLOWED_HEADERS", "Content-Type")
    CORS_SYNC_ORIGINS = _get_env("CORS_SYNC_ORIGINS", "")
    CORS_MAX_AGE = int(_get_env("CORS_MAX_AGE", "600"))


class DevelopmentConfig(BaseConfig):
    """Configuration for local development."""

    DEBUG = True
    TESTING = False


class ProductionConfig(BaseConfig):
    """Configuration for production deployments."""

    DEBUG = False
    TESTING = False


class TestingConfig(BaseConfig):
    """Configuration used by the test suite; never touches the network."""

    DEBUG = False
    TESTING = True
    SCHEDULER_ENABLED = False
    FX_RATE_FEED = "mock"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"


CONFIG_BY_ENV = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config(config_name: str | None = None) -> type[BaseConfig]:
    """Return the config class for the requested environment.

    Args:
        config_name: Optional explicit config identifier. If omitted, the
            APP_ENV environment variable is consulted.

    Raises:
        KeyError: If the requested configuration is not defined.
        ValueError: If the configured feed or business calendar is unknown.
    """

    env_candidate = config_name if config_name is not None else os.getenv("APP_ENV", "development")
    env_name = (env_candidate or "development").lower()
    try:
        config_cls = CONFIG_BY_ENV[env_name]
    except KeyError as exc:
        raise KeyError(f"Unknown APP_ENV '{env_name}'") from exc

    _validate_feed(config_cls)
    _validate_calendar(config_cls)
    return config_cls


def _validate_feed(config_cls: type[BaseConfig]) -> None:
    normalized = _normalize_feed(config_cls.FX_RATE_FEED)
    if normalized not in SUPPORTED_RATE_FEEDS:
        raise ValueError(
            f"Unsupported FX_RATE_FEED '{config_cls.FX_RATE_FEED}'. "
            f"Allowed values: {sorted(SUPPORTED_RATE_FEEDS)}"
        )
    config_cls.FX_RATE_FEED = normalized


def _validate_calendar(config_cls: type[BaseConfig]) -> None:
    calendar_name = (config_cls.BUSINESS_CALENDAR or "").strip().lower()
    if calendar_name not in SUPPORTED_CALENDARS:
        raise ValueError(
            f"Unsupported BUSINESS_CALENDAR '{config_cls.BUSINESS_CALENDAR}'. "
            f"Allowed values: {sorted(SUPPORTED_CALENDARS)}"
        )
    config_cls.BUSINESS_CALENDAR = calendar_name


def _normalize_feed(value: str | None) -> str:
    if not value:
        return ""
    normalized = value.lower()
    return FEED_ALIASES.get(normalized, normalized)
