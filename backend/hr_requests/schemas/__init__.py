from .requests import (
    AttachmentIn,
    RequestCreate,
    StatusUpdate,
    CommentCreate,
    RequestItem,
    StatusUpdateResponse,
    RequestSummary,
    ExportRow,
)
from .notifications import NotificationItem

__all__ = [
    "AttachmentIn",
    "RequestCreate",
    "StatusUpdate",
    "CommentCreate",
    "RequestItem",
    "StatusUpdateResponse",
    "RequestSummary",
    "ExportRow",
    "NotificationItem",
]
