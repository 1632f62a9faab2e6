from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field


class AttachmentIn(BaseModel):
    """Handle returned by file storage for an uploaded file."""
    file_name: str
    file_path: str
    file_type: str | None = None


class RequestCreate(BaseModel):
    employee_id: str
    employee_name: str
    request_type: str
    priority: Literal["low", "medium", "high"] = "medium"
    description: str = ""
    reason: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    amount: int | None = Field(default=None, ge=0)
    attachments: list[AttachmentIn] = Field(default_factory=list)


class StatusUpdate(BaseModel):
    status: str
    comment: str | None = None


class CommentCreate(BaseModel):
    comment: str


class AttachmentItem(BaseModel):
    file_name: str
    file_path: str
    file_type: str | None


class CommentItem(BaseModel):
    author: str
    role: str
    comment: str
    timestamp: str


class HistoryItem(BaseModel):
    action: str
    author: str
    timestamp: str


class RequestItem(BaseModel):
    id: str
    employee_id: str
    employee_name: str
    request_type: str
    status: str
    priority: str
    description: str
    reason: str | None
    start_date: str | None
    end_date: str | None
    amount: int | None
    submission_date: str
    version: int
    attachments: list[AttachmentItem]
    comments: list[CommentItem]
    history: list[HistoryItem]


class StatusUpdateResponse(BaseModel):
    request: RequestItem
    changed: bool
    notice: str | None = None


class RequestSummary(BaseModel):
    total: int
    by_status: dict[str, int]
    by_bucket: dict[str, int]
    by_type: dict[str, int]
    generated_at: str


class ExportRow(BaseModel):
    id: str
    employee_id: str
    employee_name: str
    request_type: str
    status: str
    priority: str
    submission_date: str
    start_date: str | None
    end_date: str | None
    amount: int | None
    description: str
    reason: str | None
    comments: int
    history: int
    attachments: int
