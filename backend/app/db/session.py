from __future__ import annotations

from collections.abc import Generator

from sqlmodel import Session

from app.db.engine import get_engine


def get_session() -> Generator[Session, None, None]:
    with Session(get_engine(), expire_on_commit=False) as session:
        yield session
