from __future__ import annotations

from uuid import UUID

from sqlmodel import Session

from app.core.config import get_settings
from app.core.logging import get_logger
from app.db.engine import create_engine_from_url, ensure_database_parent_dir
from app.db.migrations import upgrade_to_head
from app.db.models import Project

logger = get_logger("dlg.db.bootstrap")


def initialize_database(database_url: str | None = None) -> None:
    target_url = database_url or get_settings().database_url
    ensure_database_parent_dir(target_url)
    upgrade_to_head(target_url)
    logger.info("db.migrated")


def create_project(
    *,
    user_id: UUID,
    name: str,
    description: str | None = None,
    database_url: str | None = None,
) -> Project:
    """Insert a project for ``user_id``; projects have no HTTP create endpoint."""
    target_url = database_url or get_settings().database_url
    engine = create_engine_from_url(target_url)
    try:
        with Session(engine, expire_on_commit=False) as session:
            project = Project(user_id=user_id, name=name, description=description)
            session.add(project)
            session.commit()
            session.refresh(project)
    finally:
        engine.dispose()
    logger.info("project.created", project_id=str(project.id))
    return project
