"""Application factory for the ECB reference-rate service."""

from __future__ import annotations

from typing import Any

from flask import Flask
from flask_smorest import Api

from config import get_config
from .cli import register_cli
from .cors import init_cors
from .database import init_app as init_db
from .logging import init_request_logging, setup_logging


def create_app(config_name: str | None = None, overrides: dict[str, Any] | None = None) -> Flask:
    """Application factory adhering to the Flask app factory pattern."""

    app = Flask(__name__)
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    setup_logging(app)
    init_request_logging(app)
    _configure_api(app)
    api = _register_extensions(app)
    _register_blueprints(app, api)
    _register_error_handlers(app)

    register_cli(app)
    return app


def _configure_api(app: Flask) -> None:
    app.config.setdefault("API_TITLE", "ECB Reference Rates API")
    app.config.setdefault("API_VERSION", "v1")
    app.config.setdefault("OPENAPI_VERSION", "3.0.3")
    app.config.setdefault("OPENAPI_URL_PREFIX", "/docs")
    app.config.setdefault("OPENAPI_SWAGGER_UI_PATH", "/")
    app.config.setdefault(
        "OPENAPI_SWAGGER_UI_URL",
        "https://cdn.jsdelivr.net/npm/swagger-ui-dist/",
    )


def _register_extensions(app: Flask) -> Api:
    """Initialize storage, the feed, the synchronizer and the scheduler."""

    init_db(app)
    from . import models  # noqa: F401  # Ensure models are imported for metadata
    from .providers.registry import init_feed
    from .services import ensure_sync_state, init_scheduler, init_synchronizer

    init_feed(app)
    init_synchronizer(app)
    ensure_sync_state(app)
    init_scheduler(app)
    init_cors(app)

    api = Api(app)
    app.extensions["smorest_api"] = api
    return api


def _register_blueprints(app: Flask, api: Api) -> None:
    """Register Flask blueprints."""

    from .health import blp as health_blp
    from .rates import blp as rates_blp
    from .sync import bp as sync_bp

    api.register_blueprint(health_blp, url_prefix="/health")
    api.register_blueprint(rates_blp, url_prefix="/api/v1")
    app.register_blueprint(sync_bp, url_prefix="/rates")


def _register_error_handlers(app: Flask) -> None:
    """Register global error handlers."""

    from .errors import register_error_handlers

    register_error_handlers(app)
