from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hr_requests.api.deps import get_notification_dispatcher
from hr_requests.core.config import get_settings
from hr_requests.db.db import get_db
from hr_requests.domain.audit import Attachment
from hr_requests.schemas.requests import (
    CommentCreate,
    ExportRow,
    RequestCreate,
    RequestItem,
    RequestSummary,
    StatusUpdate,
    StatusUpdateResponse,
)
from hr_requests.security.authz import Identity
from hr_requests.security.deps import require_permission
from hr_requests.services import request_store
from hr_requests.services.notifications import NotificationDispatcher
from hr_requests.services.requests import (
    add_comment,
    delete_request as delete_request_record,
    submit_request,
    update_request_status as update_request_status_record,
)

router = APIRouter(prefix="/requests", tags=["requests"])
logger = logging.getLogger("hr_requests.api.requests")
settings = get_settings()
DEFAULT_LIST_LIMIT = 200
MAX_LIST_LIMIT = 1000


@router.post("", response_model=RequestItem, status_code=201)
def create_request(
    payload: RequestCreate,
    _: Identity = Depends(require_permission("requests:create")),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    req = submit_request(
        db,
        dispatcher,
        employee_id=payload.employee_id,
        employee_name=payload.employee_name,
        request_type=payload.request_type,
        priority=payload.priority,
        description=payload.description,
        reason=payload.reason,
        start_date=payload.start_date,
        end_date=payload.end_date,
        amount=payload.amount,
        attachments=[
            Attachment(file_name=a.file_name, file_path=a.file_path, file_type=a.file_type)
            for a in payload.attachments
        ],
        id_prefix=settings.request_id_prefix,
        system_recipient=settings.system_recipient,
    )
    return request_store.request_item(req)


@router.get("", response_model=list[RequestItem])
def list_requests(
    status: str | None = None,
    request_type: str | None = None,
    search: str | None = None,
    bucket: str | None = Query(default=None, pattern="^(open|completed)$"),
    limit: int = Query(default=DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT),
    _: Identity = Depends(require_permission("requests:read")),
    db: Session = Depends(get_db),
):
    rows = request_store.list_requests(
        db,
        request_store.RequestFilter(
            status=status,
            request_type=request_type,
            search_text=search,
            bucket=bucket,
        ),
        limit=limit,
    )
    return [request_store.request_item(r) for r in rows]


@router.get("/summary", response_model=RequestSummary)
def requests_summary(
    _: Identity = Depends(require_permission("requests:summary")),
    db: Session = Depends(get_db),
):
    return request_store.summarize_requests(db)


@router.get("/export", response_model=list[ExportRow])
def export_requests(
    identity: Identity = Depends(require_permission("requests:export")),
    db: Session = Depends(get_db),
):
    rows = request_store.export_rows(db)
    logger.info("Exported %s finalized request(s) for %s", len(rows), identity.user_id)
    return rows


@router.get("/{request_id}", response_model=RequestItem)
def get_request(
    request_id: str,
    _: Identity = Depends(require_permission("requests:read")),
    db: Session = Depends(get_db),
):
    return request_store.request_item(request_store.get_request(db, request_id))


@router.patch("/{request_id}/status", response_model=StatusUpdateResponse)
def update_request_status(
    request_id: str,
    payload: StatusUpdate,
    identity: Identity = Depends(require_permission("requests:update_status")),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    result = update_request_status_record(
        db,
        dispatcher,
        request_id=request_id,
        new_status=payload.status,
        actor=identity,
        comment=payload.comment,
        enforce_role_gates=settings.enforce_role_gates,
    )
    return {
        "request": request_store.request_item(result.request),
        "changed": result.changed,
        "notice": result.notice,
    }


@router.post("/{request_id}/comments", response_model=RequestItem, status_code=201)
def comment_on_request(
    request_id: str,
    payload: CommentCreate,
    identity: Identity = Depends(require_permission("requests:comment")),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    req = add_comment(db, dispatcher, request_id=request_id, comment=payload.comment, actor=identity)
    return request_store.request_item(req)


@router.delete("/{request_id}")
def delete_request(
    request_id: str,
    identity: Identity = Depends(require_permission("requests:delete")),
    db: Session = Depends(get_db),
):
    delete_request_record(db, request_id=request_id, actor=identity)
    return {"ok": True}
