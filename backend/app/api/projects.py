from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict

from app.api.errors import error_response_docs
from app.core.auth import CurrentActor, DbSession
from app.db.repositories import ProjectRepository
from app.services import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])


class ApiKeyRead(BaseModel):
    api_key: UUID
    model_config = ConfigDict(
        json_schema_extra={"example": {"api_key": "b0f4c7a2-5d1e-4b8a-9c3f-7e6d5c4b3a21"}}
    )


def get_project_service(session: DbSession) -> ProjectService:
    return ProjectService(ProjectRepository(session))


ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]


@router.post(
    "/{project_id}/regenerate-api-key",
    response_model=ApiKeyRead,
    responses=error_response_docs(
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
        status.HTTP_404_NOT_FOUND,
    ),
)
def regenerate_api_key(
    project_id: UUID,
    actor: CurrentActor,
    service: ProjectServiceDep,
) -> ApiKeyRead:
    project = service.regenerate_api_key(project_id, actor)
    return ApiKeyRead(api_key=project.api_key)
