from __future__ import annotations

from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.core.logging import get_logger
from app.orchestration.errors import DEFAULT_ERROR_MESSAGES, TaskErrorKind, TaskServiceError
from app.security import redact_sensitive_text

logger = get_logger("dlg.api.errors")

TASK_ERROR_STATUS: dict[TaskErrorKind, int] = {
    TaskErrorKind.AUTHENTICATION_REQUIRED: status.HTTP_401_UNAUTHORIZED,
    TaskErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    TaskErrorKind.PROJECT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    TaskErrorKind.TASK_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    TaskErrorKind.AUTHORIZATION_ERROR: status.HTTP_403_FORBIDDEN,
    TaskErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    TaskErrorKind.PERSISTENCE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ValidationIssue(BaseModel):
    field: str
    message: str


class ErrorPayload(BaseModel):
    code: str
    message: str
    issues: list[ValidationIssue] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: ErrorPayload
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed.",
                    "issues": [
                        {
                            "field": "body.title",
                            "message": "String should have at least 1 character",
                        }
                    ],
                }
            }
        }
    )


def _status_to_code(status_code: int) -> str:
    mapping: dict[int, str] = {
        status.HTTP_400_BAD_REQUEST: "VALIDATION_ERROR",
        status.HTTP_401_UNAUTHORIZED: "AUTHENTICATION_REQUIRED",
        status.HTTP_403_FORBIDDEN: "AUTHORIZATION_ERROR",
        status.HTTP_404_NOT_FOUND: "NOT_FOUND",
        status.HTTP_409_CONFLICT: "INVALID_STATE",
        status.HTTP_422_UNPROCESSABLE_CONTENT: "VALIDATION_ERROR",
        status.HTTP_500_INTERNAL_SERVER_ERROR: "INTERNAL_ERROR",
    }
    return mapping.get(status_code, "UNKNOWN_ERROR")


def _status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Unknown Error"


def build_error_response(
    status_code: int,
    code: str,
    message: str,
    *,
    issues: list[ValidationIssue] | None = None,
) -> JSONResponse:
    safe_message = redact_sensitive_text(message)
    payload = ErrorResponse(
        error=ErrorPayload(
            code=code,
            message=safe_message,
            issues=issues or [],
        )
    )
    return JSONResponse(status_code=status_code, content=payload.model_dump(mode="json"))


def _extract_validation_issues(exc: RequestValidationError) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = str(error.get("msg", "Invalid value"))
        issues.append(ValidationIssue(field=location, message=message))
    return issues


def task_error_response(exc: TaskServiceError) -> JSONResponse:
    status_code = TASK_ERROR_STATUS[exc.kind]
    message = exc.message
    if exc.kind is TaskErrorKind.PERSISTENCE_ERROR:
        # storage details stay in the log
        message = DEFAULT_ERROR_MESSAGES[exc.kind]
    return build_error_response(status_code, exc.kind.value.upper(), message)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TaskServiceError)
    async def handle_task_service_error(_: Request, exc: TaskServiceError) -> JSONResponse:
        return task_error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        return build_error_response(
            status.HTTP_422_UNPROCESSABLE_CONTENT,
            "VALIDATION_ERROR",
            "Request validation failed.",
            issues=_extract_validation_issues(exc),
        )

    @app.exception_handler(HTTPException)
    async def handle_http_exception(_: Request, exc: HTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else _status_phrase(exc.status_code)
        return build_error_response(exc.status_code, _status_to_code(exc.status_code), message)

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "api.unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
        )
        return build_error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_ERROR",
            "Unexpected server error.",
        )


def error_response_docs(*status_codes: int) -> dict[int, dict[str, Any]]:
    responses: dict[int, dict[str, Any]] = {}
    for status_code in status_codes:
        code = _status_to_code(status_code)
        responses[status_code] = {
            "model": ErrorResponse,
            "description": _status_phrase(status_code),
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": code,
                            "message": _status_phrase(status_code),
                            "issues": [],
                        }
                    }
                }
            },
        }
    return responses
