from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.schemas import HealthzResponse, ReadinessChecks, ReadyzResponse
from app.core.config import get_settings
from app.core.logging import get_logger
from app.db.engine import get_engine

router = APIRouter()
logger = get_logger("dlg.api.health")


@router.get("/healthz", response_model=HealthzResponse)
def healthz() -> HealthzResponse:
    settings = get_settings()
    return HealthzResponse(status="ok", service=settings.app_name, env=settings.app_env)


@router.get("/readyz", response_model=ReadyzResponse)
def readyz(response: Response) -> ReadyzResponse:
    _ = get_settings()
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("health.database_unavailable")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadyzResponse(
            status="not_ready",
            checks=ReadinessChecks(configuration="ok", database="unavailable"),
        )
    return ReadyzResponse(status="ready", checks=ReadinessChecks(configuration="ok", database="ok"))
