from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hr_requests.db.db import get_db
from hr_requests.schemas.notifications import NotificationItem
from hr_requests.security.authz import Identity, require
from hr_requests.security.deps import require_permission
from hr_requests.services.notifications import (
    list_notifications as list_notification_records,
    mark_notification_read,
    notification_item,
)

router = APIRouter(tags=["notifications"])


@router.get("/notifications", response_model=list[NotificationItem])
def list_notifications(
    user_id: str | None = None,
    unread_only: bool = False,
    limit: int = Query(default=100, ge=1, le=500),
    identity: Identity = Depends(require_permission("notifications:list")),
    db: Session = Depends(get_db),
):
    recipient = user_id or identity.user_id
    if recipient != identity.user_id:
        require(identity, "notifications:list_all")

    rows = list_notification_records(db, recipient, unread_only=unread_only, limit=limit)
    return [notification_item(n) for n in rows]


@router.post("/notifications/{notification_id}/read")
def mark_read(
    notification_id: int,
    identity: Identity = Depends(require_permission("notifications:list")),
    db: Session = Depends(get_db),
):
    recipient = None if "notifications:list_all" in identity.permissions else identity.user_id
    mark_notification_read(db, notification_id, recipient_user_id=recipient)
    db.commit()
    return {"ok": True}
