"""SQLAlchemy database helpers and session management."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, scoped_session, sessionmaker


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


# Thread-local scoped session: the sync thread and request threads never share one.
SessionLocal = scoped_session(sessionmaker())

_engine: Optional[Engine] = None


def build_engine(database_uri: str) -> Engine:
    """Create an engine; SQLite files get WAL journaling so reads never wait on the writer."""

    if database_uri.startswith("sqlite"):
        engine = create_engine(
            database_uri,
            future=True,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        event.listen(engine, "connect", _configure_sqlite)
        return engine
    return create_engine(database_uri, future=True, pool_pre_ping=True)


def _configure_sqlite(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
    finally:
        cursor.close()


def init_app(app: Any) -> None:
    """Configure SQLAlchemy engine and session for the Flask application."""

    global _engine

    if _engine is None:
        _engine = build_engine(app.config["SQLALCHEMY_DATABASE_URI"])
        SessionLocal.configure(bind=_engine, autoflush=False, expire_on_commit=False)

    @app.teardown_appcontext
    def shutdown_session(_: Optional[BaseException] = None) -> None:
        SessionLocal.remove()

    app.extensions["sqlalchemy_engine"] = _engine
    app.extensions["sqlalchemy_session_factory"] = SessionLocal


def get_engine() -> Engine:
    """Return the active SQLAlchemy engine; raise if not yet initialized."""

    if _engine is None:
        raise RuntimeError("Database engine has not been initialized. Call init_app first.")
    return _engine


def get_session() -> scoped_session:
    """Expose the configured session factory."""

    return SessionLocal
