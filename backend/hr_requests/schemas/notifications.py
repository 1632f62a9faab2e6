from __future__ import annotations

from pydantic import BaseModel


class NotificationItem(BaseModel):
    id: int
    recipient_user_id: str
    title: str
    body: str
    type: str
    is_read: bool
    created_at: str
