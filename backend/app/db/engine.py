from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlmodel import create_engine

from app.core.config import get_settings

_engine: Engine | None = None


def _is_sqlite(database_url: str) -> bool:
    return make_url(database_url).drivername.split("+", maxsplit=1)[0] == "sqlite"


def _sqlite_connect_args(database_url: str) -> dict[str, bool]:
    return {"check_same_thread": False} if _is_sqlite(database_url) else {}


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def create_engine_from_url(database_url: str, *, echo: bool = False) -> Engine:
    engine = create_engine(
        database_url,
        echo=echo,
        connect_args=_sqlite_connect_args(database_url),
    )
    if _is_sqlite(database_url):
        # project deletion cascades to tasks and comments
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        settings = get_settings()
        if settings.sqlalchemy_echo is not None:
            echo = settings.sqlalchemy_echo
        else:
            echo = settings.debug and not settings.testing
        _engine = create_engine_from_url(
            settings.database_url,
            echo=echo,
        )
    return _engine


def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def resolve_sqlite_database_path(database_url: str) -> Path | None:
    if not _is_sqlite(database_url):
        return None

    database = make_url(database_url).database
    if database is None or database in {"", ":memory:"}:
        return None

    db_path = Path(database)
    if not db_path.is_absolute():
        db_path = (Path.cwd() / db_path).resolve()
    return db_path


def ensure_database_parent_dir(database_url: str) -> None:
    db_path = resolve_sqlite_database_path(database_url)
    if db_path is None:
        return
    db_path.parent.mkdir(parents=True, exist_ok=True)
