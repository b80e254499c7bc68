from __future__ import annotations

from pathlib import Path
from uuid import UUID, uuid4

from pytest import CaptureFixture
from sqlalchemy import inspect
from sqlmodel import Session

from app.db.cli import main
from app.db.engine import create_engine_from_url
from app.db.models import Project


def _to_sqlite_url(path: Path) -> str:
    return f"sqlite:///{path.as_posix()}"


def test_init_applies_migrations(tmp_path: Path) -> None:
    db_url = _to_sqlite_url(tmp_path / "nested" / "cli.db")

    assert main(["init", "--database-url", db_url]) == 0

    engine = create_engine_from_url(db_url)
    try:
        assert {"projects", "tasks", "task_comments"} <= set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def test_create_project_prints_identifiers(
    tmp_path: Path,
    capsys: CaptureFixture[str],
) -> None:
    db_url = _to_sqlite_url(tmp_path / "cli-project.db")
    user_id = uuid4()
    assert main(["migrate", "--database-url", db_url]) == 0

    exit_code = main(
        [
            "create-project",
            "--user-id",
            str(user_id),
            "--name",
            "CLI Project",
            "--database-url",
            db_url,
        ]
    )

    assert exit_code == 0
    lines = dict(
        line.split("=", maxsplit=1) for line in capsys.readouterr().out.splitlines() if "=" in line
    )
    engine = create_engine_from_url(db_url)
    try:
        with Session(engine) as session:
            project = session.get(Project, UUID(lines["project_id"]))
            assert project is not None
            assert project.user_id == user_id
            assert project.api_key == UUID(lines["api_key"])
    finally:
        engine.dispose()
