from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from pytest import MonkeyPatch
from sqlmodel import Session, SQLModel

from app.core.config import get_settings
from app.db.engine import create_engine_from_url, dispose_engine
from app.db.models import Project
from app.main import create_app
from tests.shared import ApiTestContext


def _to_sqlite_url(path: Path) -> str:
    return f"sqlite:///{path.as_posix()}"


@pytest.fixture
def db_session(tmp_path: Path) -> Iterator[Session]:
    engine = create_engine_from_url(_to_sqlite_url(tmp_path / "unit.db"))
    SQLModel.metadata.create_all(engine)
    with Session(engine, expire_on_commit=False) as session:
        yield session
    engine.dispose()


@pytest.fixture
def api_context(tmp_path: Path, monkeypatch: MonkeyPatch) -> Iterator[ApiTestContext]:
    """
    Creates a temporary SQLite database and a test client.
    Seeds one project for each of two users so isolation can be checked.
    """
    db_url = _to_sqlite_url(tmp_path / "api-integration.db")
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("DATABASE_URL", db_url)
    monkeypatch.delenv("USER_ID_HEADER", raising=False)
    get_settings.cache_clear()
    dispose_engine()

    engine = create_engine_from_url(db_url)
    SQLModel.metadata.create_all(engine)

    user_id = uuid4()
    other_user_id = uuid4()
    with Session(engine) as session:
        project = Project(user_id=user_id, name="API Project")
        other_project = Project(user_id=other_user_id, name="API Project 2")
        session.add(project)
        session.add(other_project)
        session.commit()
        session.refresh(project)
        session.refresh(other_project)
        project_id, api_key = project.id, project.api_key
        other_project_id, other_api_key = other_project.id, other_project.api_key

    with TestClient(create_app()) as client:
        yield ApiTestContext(
            client=client,
            engine=engine,
            user_id=user_id,
            other_user_id=other_user_id,
            project_id=project_id,
            api_key=api_key,
            other_project_id=other_project_id,
            other_api_key=other_api_key,
        )

    engine.dispose()
    dispose_engine()
    get_settings.cache_clear()
