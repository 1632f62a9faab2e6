from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session

from hr_requests.core.config import get_settings

settings = get_settings()


def _postgres_connect_args() -> dict:
    options = (
        f"-c statement_timeout={settings.db_statement_timeout_ms} "
        f"-c lock_timeout={settings.db_lock_timeout_ms}"
    )
    return {
        "connect_timeout": settings.db_connect_timeout_seconds,
        "options": options,
    }


def engine_options(database_url: str) -> dict:
    """Engine keyword arguments for the configured backend."""
    backend = make_url(database_url).get_backend_name()
    if backend == "sqlite":
        # Sessions are used from FastAPI's threadpool.
        return {"connect_args": {"check_same_thread": False}}

    options = {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout_seconds,
        "pool_recycle": settings.db_pool_recycle_seconds,
    }
    if backend == "postgresql":
        options["connect_args"] = _postgres_connect_args()
    return options


# Create the SQLAlchemy engine and session factory
engine = create_engine(settings.database_url, **engine_options(settings.database_url))

# Create a configured "Session" class
SessionLocal = sessionmaker(bind=engine)


def get_db():
    """Dependency that provides a database session."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
