from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
    # Core
    database_url: str
    app_env: str
    log_level: str
    log_format: str
    log_redact_fields: list[str]

    # Web/API
    cors_allow_origins: list[str]

    # DB runtime
    db_pool_size: int
    db_max_overflow: int
    db_pool_timeout_seconds: int
    db_pool_recycle_seconds: int
    db_connect_timeout_seconds: int
    db_statement_timeout_ms: int
    db_lock_timeout_ms: int

    # Request workflow
    enforce_role_gates: bool
    request_id_prefix: str

    # Notifications
    notification_poll_seconds: float
    notification_max_attempts: int
    notification_queue_size: int
    system_recipient: str

    # Secrets
    jwt_secret: str
    jwt_exp_hours: int


def _parse_csv(value: str | None) -> list[str]:
    """Parses a comma-separated string into a list of strings."""
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def get_settings() -> Settings:
    """Loads settings from environment variables with defaults."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL is required (PostgreSQL in production, SQLite for local runs)")
    app_env = os.getenv("APP_ENV", "dev").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format = os.getenv("LOG_FORMAT", "text").lower()
    log_redact_fields = _parse_csv(
        os.getenv(
            "LOG_REDACT_FIELDS",
            "password,token,secret,authorization,jwt_secret,file_path",
        )
    )

    cors = _parse_csv(os.getenv("CORS_ALLOW_ORIGINS"))
    if not cors:
        cors = ["http://localhost:5173", "http://127.0.0.1:5173"]

    db_pool_size = int(os.getenv("DB_POOL_SIZE", "10"))
    db_max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "20"))
    db_pool_timeout_seconds = int(os.getenv("DB_POOL_TIMEOUT_SECONDS", "30"))
    db_pool_recycle_seconds = int(os.getenv("DB_POOL_RECYCLE_SECONDS", "1800"))
    db_connect_timeout_seconds = int(os.getenv("DB_CONNECT_TIMEOUT_SECONDS", "10"))
    db_statement_timeout_ms = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "15000"))
    db_lock_timeout_ms = int(os.getenv("DB_LOCK_TIMEOUT_MS", "5000"))

    # Off by default: any authenticated caller may set any status.
    enforce_role_gates = _parse_bool(os.getenv("ENFORCE_ROLE_GATES"), False)
    request_id_prefix = os.getenv("REQUEST_ID_PREFIX", "REQ").strip() or "REQ"

    notification_poll_seconds = float(os.getenv("NOTIFICATION_POLL_SECONDS", "1"))
    notification_max_attempts = int(os.getenv("NOTIFICATION_MAX_ATTEMPTS", "3"))
    notification_queue_size = int(os.getenv("NOTIFICATION_QUEUE_SIZE", "1024"))
    system_recipient = os.getenv("SYSTEM_RECIPIENT", "system").strip() or "system"

    jwt_secret = os.getenv("JWT_SECRET", "dev-secret")
    jwt_exp_hours = int(os.getenv("JWT_EXP_HOURS", "24"))

    if app_env in {"prod", "production"} and jwt_secret == "dev-secret":
        raise RuntimeError("JWT_SECRET must be set to a non-default value in production")

    return Settings(
        database_url=database_url,
        app_env=app_env,
        log_level=log_level,
        log_format=log_format,
        log_redact_fields=log_redact_fields,
        cors_allow_origins=cors,
        db_pool_size=db_pool_size,
        db_max_overflow=db_max_overflow,
        db_pool_timeout_seconds=db_pool_timeout_seconds,
        db_pool_recycle_seconds=db_pool_recycle_seconds,
        db_connect_timeout_seconds=db_connect_timeout_seconds,
        db_statement_timeout_ms=db_statement_timeout_ms,
        db_lock_timeout_ms=db_lock_timeout_ms,
        enforce_role_gates=enforce_role_gates,
        request_id_prefix=request_id_prefix,
        notification_poll_seconds=notification_poll_seconds,
        notification_max_attempts=notification_max_attempts,
        notification_queue_size=notification_queue_size,
        system_recipient=system_recipient,
        jwt_secret=jwt_secret,
        jwt_exp_hours=jwt_exp_hours,
    )
