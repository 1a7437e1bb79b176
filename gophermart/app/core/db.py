from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import event
from sqlmodel import Session, SQLModel, create_engine

from ..models import db as _db_models  # noqa: F401 - ensure models register with metadata
from .config import get_settings


def _enable_sqlite_wal(dbapi_connection, connection_record) -> None:
    # Request handlers and reconciler threads write to the same file.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def create_engine_for_url(database_url: str, *, sqlite_busy_timeout: float = 5.0):
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=False, pool_pre_ping=True)

    connect_args: dict[str, Any] = {
        "check_same_thread": False,
        "timeout": sqlite_busy_timeout,
    }
    sqlite_engine = create_engine(database_url, echo=False, connect_args=connect_args)
    event.listen(sqlite_engine, "connect", _enable_sqlite_wal)
    return sqlite_engine


settings = get_settings()
engine = create_engine_for_url(
    settings.database_url, sqlite_busy_timeout=settings.sqlite_busy_timeout
)


def init_db() -> None:
    SQLModel.metadata.create_all(engine)


def dispose_engine() -> None:
    engine.dispose()


def new_session() -> Session:
    """Session on the current engine for the reconciler; the caller closes it."""
    return Session(engine)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def set_engine(new_engine) -> None:
    global engine
    engine = new_engine
