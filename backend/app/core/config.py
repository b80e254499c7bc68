from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

BACKEND_ROOT = Path(__file__).resolve().parents[2]

Environment = Literal["development", "test", "production"]
LogFormat = Literal["json", "console"]

DEFAULT_CORS_ALLOW_ORIGINS = [
    "http://localhost:4321",
    "http://127.0.0.1:4321",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


class ConfigurationError(Exception):
    """Raised when an environment variable holds an unusable value."""


class Settings(BaseModel):
    app_name: str = Field(default="Delegate Board Backend")
    app_env: Environment = Field(default="development")
    debug: bool = Field(default=True)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    database_url: str = Field(default="sqlite:///./delegate_board.db")
    testing: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default="json")
    log_file: str | None = Field(default=None)
    sqlalchemy_echo: bool | None = Field(default=None)  # None = auto (debug mode)
    db_auto_init: bool = Field(default=True)
    user_id_header: str = Field(default="X-User-Id", min_length=1)
    task_page_size_default: int = Field(default=20, ge=1)
    task_page_size_max: int = Field(default=100, ge=1)
    task_position_retry_attempts: int = Field(default=3, ge=1)
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ALLOW_ORIGINS)
    )
    cors_allow_credentials: bool = Field(default=True)


def _load_env_file() -> None:
    env_file = BACKEND_ROOT / ".env"
    if env_file.exists():
        load_dotenv(env_file, override=False)


def _to_bool(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _to_bool_or_none(value: str | None) -> bool | None:
    """Parse boolean from env var, return None if not set (for auto behavior)."""
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return None


def _to_int(name: str, value: str | None, *, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}.") from exc


def _normalize_env(value: str | None) -> Environment:
    if value is None:
        return "development"
    lowered = value.strip().lower()
    if lowered == "test":
        return "test"
    if lowered == "production":
        return "production"
    return "development"


def _normalize_log_format(value: str | None, app_env: Environment) -> LogFormat:
    if value is not None:
        lowered = value.strip().lower()
        if lowered == "console":
            return "console"
        if lowered == "json":
            return "json"
    return "console" if app_env == "development" else "json"


def _parse_csv_list(value: str | None, *, default: list[str]) -> list[str]:
    if value is None:
        return list(default)
    items = [part.strip() for part in value.split(",")]
    normalized = [item for item in items if item]
    return normalized or list(default)


def load_settings() -> Settings:
    _load_env_file()
    app_env = _normalize_env(os.getenv("APP_ENV"))
    default_debug = app_env != "production"
    default_testing = app_env == "test"
    default_db_auto_init = app_env == "development"

    default_database_url = (
        "sqlite:///./delegate_board_test.db"
        if app_env == "test"
        else "sqlite:///./delegate_board.db"
    )
    database_url = os.getenv("DATABASE_URL") or default_database_url

    page_size_default = _to_int(
        "TASK_PAGE_SIZE_DEFAULT", os.getenv("TASK_PAGE_SIZE_DEFAULT"), default=20
    )
    page_size_max = _to_int("TASK_PAGE_SIZE_MAX", os.getenv("TASK_PAGE_SIZE_MAX"), default=100)
    if page_size_default > page_size_max:
        raise ConfigurationError(
            "TASK_PAGE_SIZE_DEFAULT must not exceed TASK_PAGE_SIZE_MAX "
            f"({page_size_default} > {page_size_max})."
        )

    return Settings(
        app_name=os.getenv("APP_NAME", "Delegate Board Backend"),
        app_env=app_env,
        debug=_to_bool(os.getenv("DEBUG"), default=default_debug),
        host=os.getenv("HOST", "127.0.0.1"),
        port=_to_int("PORT", os.getenv("PORT"), default=8000),
        database_url=database_url,
        testing=_to_bool(os.getenv("TESTING"), default=default_testing),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_format=_normalize_log_format(os.getenv("LOG_FORMAT"), app_env),
        log_file=os.getenv("LOG_FILE"),
        sqlalchemy_echo=_to_bool_or_none(os.getenv("SQLALCHEMY_ECHO")),
        db_auto_init=_to_bool(os.getenv("DB_AUTO_INIT"), default=default_db_auto_init),
        user_id_header=(os.getenv("USER_ID_HEADER") or "X-User-Id").strip(),
        task_page_size_default=page_size_default,
        task_page_size_max=page_size_max,
        task_position_retry_attempts=_to_int(
            "TASK_POSITION_RETRY_ATTEMPTS",
            os.getenv("TASK_POSITION_RETRY_ATTEMPTS"),
            default=3,
        ),
        cors_allow_origins=_parse_csv_list(
            os.getenv("CORS_ALLOW_ORIGINS"),
            default=DEFAULT_CORS_ALLOW_ORIGINS,
        ),
        cors_allow_credentials=_to_bool(
            os.getenv("CORS_ALLOW_CREDENTIALS"),
            default=True,
        ),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
