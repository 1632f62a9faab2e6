from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import text

from hr_requests.core.runtime_state import snapshot_runtime_state
from hr_requests.db.db import SessionLocal
from hr_requests.security.deps import require_permission

router = APIRouter(tags=["ops"])
logger = logging.getLogger("hr_requests.api.health")


@router.get("/healthz")
def healthz():
    state = snapshot_runtime_state()
    return {
        "status": "ok",
        "is_shutting_down": bool(state.get("is_shutting_down", False)),
        "runtime": state,
    }


@router.get("/readyz")
def readyz(response: Response):
    state = snapshot_runtime_state()
    if bool(state.get("is_shutting_down", False)):
        response.status_code = 503
        return {
            "status": "not_ready",
            "reason": "shutdown_in_progress",
            "runtime": state,
        }

    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("Readiness check failed: %s", exc)
        response.status_code = 503
        return {
            "status": "not_ready",
            "reason": "database_unavailable",
            "runtime": state,
        }

    return {
        "status": "ready",
        "runtime": state,
    }


@router.get("/metrics/runtime")
def runtime_metrics(
    request: Request,
    _: object = Depends(require_permission("ops:metrics")),
):
    state = snapshot_runtime_state()
    dispatcher = getattr(request.app.state, "notification_dispatcher", None)
    state["notifications_pending"] = dispatcher.pending_count if dispatcher is not None else 0
    return state
