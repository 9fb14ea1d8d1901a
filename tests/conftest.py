"""Shared pytest fixtures."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import delete

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("SCHEDULER_ENABLED", "false")

from app import create_app  # noqa: E402
from app.database import SessionLocal, get_engine  # noqa: E402
from app.models import RateRecordRow  # noqa: E402
from app.services.backfill import init_synchronizer  # noqa: E402
from app.services.series_store import SeriesStore  # noqa: E402

TEST_ORIGIN = "http://localhost:5173"
SYNC_ORIGIN = "http://ops.localhost:8080"


@pytest.fixture(scope="session")
def app(tmp_path_factory: pytest.TempPathFactory) -> Iterator:
    """Session-wide Flask application configured with a temporary database."""

    db_dir = tmp_path_factory.mktemp("db")
    db_path = db_dir / "test.db"
    database_url = f"sqlite:///{db_path}"

    alembic_cfg = Config(str(ROOT_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(alembic_cfg, "head")

    flask_app = create_app(
        "testing",
        overrides={
            "SQLALCHEMY_DATABASE_URI": database_url,
            "CORS_ALLOWED_ORIGINS": TEST_ORIGIN,
            "CORS_SYNC_ORIGINS": SYNC_ORIGIN,
            "REFRESH_THROTTLE_SECONDS": 60,
        },
    )

    yield flask_app

    engine = get_engine()
    SessionLocal.remove()
    engine.dispose()
    command.downgrade(alembic_cfg, "base")


@pytest.fixture()
def clean_db(app) -> Iterator[None]:
    """Empty the rate table and rebuild the synchronizer around it."""

    def _wipe() -> None:
        session = SessionLocal()
        try:
            session.execute(delete(RateRecordRow))
            session.commit()
        finally:
            SessionLocal.remove()

    _wipe()
    init_synchronizer(app)
    app.extensions["fx_sync_state"] = {}
    yield
    _wipe()


@pytest.fixture()
def client(app, clean_db):
    """Provide a Flask test client over an empty store."""

    with app.test_client() as client:
        yield client


@pytest.fixture()
def store(clean_db) -> SeriesStore:
    return SeriesStore(SessionLocal)

