from __future__ import annotations

from uuid import UUID, uuid4

from sqlmodel import Session, select

from app.db.models import Project


class ProjectRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, project: Project) -> Project:
        self.session.add(project)
        self.session.commit()
        self.session.refresh(project)
        return project

    def get(self, project_id: UUID) -> Project | None:
        return self.session.get(Project, project_id)

    def get_owned(self, project_id: UUID, user_id: UUID) -> Project | None:
        statement = (
            select(Project).where(Project.id == project_id).where(Project.user_id == user_id)
        )
        return self.session.exec(statement).first()

    def get_by_api_key(self, api_key: UUID) -> Project | None:
        statement = select(Project).where(Project.api_key == api_key)
        return self.session.exec(statement).first()

    def rotate_api_key(self, project: Project) -> Project:
        project.api_key = uuid4()
        self.session.add(project)
        self.session.commit()
        self.session.refresh(project)
        return project
