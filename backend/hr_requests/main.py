from __future__ import annotations

from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
import logging
import time
import uuid

import anyio
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from jose import JWTError

from hr_requests.core.config import get_settings
from hr_requests.core.errors import (
    AuditLogImmutableError,
    ConcurrentUpdateError,
    InvalidTransitionError,
    NoOpTransitionError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from hr_requests.core.logging import configure_logging, reset_request_id, set_request_id
from hr_requests.core.runtime_state import (
    is_shutting_down,
    mark_shutdown_completed,
    mark_shutdown_started,
    mark_startup,
)
from hr_requests.db.db import engine, SessionLocal
from hr_requests.db.immutability import register_immutability_listeners
from hr_requests.db.models import Base
from hr_requests.security.authz import AuthorizationError
from hr_requests.services.notifications import NotificationDispatcher
from .api.routes import router as api_router

settings = get_settings()
configure_logging(
    settings.log_level,
    log_format=settings.log_format,
    redact_fields=settings.log_redact_fields,
)

logger = logging.getLogger("hr_requests.main")


def startup_sync() -> None:
    """Sync part of the startup process."""
    register_immutability_listeners()
    Base.metadata.create_all(engine)


def shutdown_sync() -> None:
    """Sync part of the shutdown process."""
    try:
        engine.dispose()
    except Exception:
        logger.warning("Engine dispose failed during shutdown", exc_info=True)


async def notification_loop(dispatcher: NotificationDispatcher) -> None:
    while not is_shutting_down():
        await anyio.to_thread.run_sync(dispatcher.drain)
        await anyio.sleep(settings.notification_poll_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app."""
    mark_startup()
    await anyio.to_thread.run_sync(startup_sync)
    dispatcher: NotificationDispatcher = app.state.notification_dispatcher
    async with anyio.create_task_group() as tg:
        tg.start_soon(notification_loop, dispatcher)
        yield
        shutdown_started_at = time.perf_counter()
        mark_shutdown_started()
        tg.cancel_scope.cancel()
    # Flush whatever was queued by the last requests.
    await anyio.to_thread.run_sync(dispatcher.drain)
    await anyio.to_thread.run_sync(shutdown_sync)
    shutdown_duration_ms = (time.perf_counter() - shutdown_started_at) * 1000
    mark_shutdown_completed(shutdown_duration_ms)


def _error_response(request: Request, status_code: int, exc) -> JSONResponse:
    logger.info("%s %s %s (%s)", status_code, request.method, request.url.path, str(exc))
    return JSONResponse(status_code=status_code, content={"detail": exc.as_dict()})


def create_app() -> FastAPI:
    """Create and configure the FastAPI app."""
    app = FastAPI(title="HR Request Workflow API", lifespan=lifespan)
    app.state.notification_dispatcher = NotificationDispatcher(
        SessionLocal,
        max_attempts=settings.notification_max_attempts,
        max_pending=settings.notification_queue_size,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = set_request_id(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "Request completed %s %s -> %s in %.2fms",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
            )
            return response
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.exception(
                "Request failed %s %s in %.2fms",
                request.method,
                request.url.path,
                duration_ms,
            )
            raise
        finally:
            reset_request_id(token)

    # Exception handlers
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _error_response(request, 422, exc)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error_response(request, 404, exc)

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
        return _error_response(request, 409, exc)

    @app.exception_handler(NoOpTransitionError)
    async def no_op_transition_handler(request: Request, exc: NoOpTransitionError):
        return _error_response(request, 409, exc)

    @app.exception_handler(ConcurrentUpdateError)
    async def concurrent_update_handler(request: Request, exc: ConcurrentUpdateError):
        return _error_response(request, 409, exc)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.warning("503 %s %s (%s)", request.method, request.url.path, str(exc))
        return JSONResponse(status_code=503, content={"detail": exc.as_dict()}, headers={"Retry-After": "1"})

    @app.exception_handler(AuditLogImmutableError)
    async def immutable_handler(request: Request, exc: AuditLogImmutableError):
        logger.error("Append-only violation on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.exception_handler(PermissionError)
    async def permission_error_handler(request: Request, exc: PermissionError):
        logger.info("403 %s %s (%s)", request.method, request.url.path, str(exc) or "PermissionError")
        if isinstance(exc, AuthorizationError):
            return JSONResponse(status_code=403, content={"detail": exc.as_dict()})
        return JSONResponse(status_code=403, content={"detail": "Not authorized"})

    @app.exception_handler(JWTError)
    async def jwt_error_handler(request: Request, exc: JWTError):
        logger.info("401 %s %s (%s)", request.method, request.url.path, str(exc) or "JWTError")
        return JSONResponse(status_code=401, content={"detail": "Invalid or expired token"})

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.info("%s %s %s (%s)", exc.status_code, request.method, request.url.path, str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("500 %s %s (%s)", request.method, request.url.path, str(exc))
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # Include API routes
    app.include_router(api_router)
    return app

# Create the FastAPI app instance
app = create_app()
