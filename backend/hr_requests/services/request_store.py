from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from hr_requests.core.errors import ConcurrentUpdateError, NotFoundError, ValidationError
from hr_requests.core.time import isoformat_utc, utcnow
from hr_requests.db.models import Request, RequestAttachment, RequestComment, RequestHistoryEntry
from hr_requests.domain.audit import (
    SUBMITTED_ACTION,
    Attachment,
    CommentEntry,
    HistoryEntry,
    append,
    history_entry,
)
from hr_requests.domain.workflow import BUCKETS, INITIAL_STATUS, STATUSES, TERMINAL_STATUSES

logger = logging.getLogger("hr_requests.request_store")

PRIORITIES = ("low", "medium", "high")


@dataclass(frozen=True)
class RequestFilter:
    status: str | None = None
    request_type: str | None = None
    search_text: str | None = None
    bucket: str | None = None


def generate_request_id(prefix: str = "REQ") -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


def _blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def validate_new_request(
    *,
    employee_id: str | None,
    employee_name: str | None,
    request_type: str | None,
    priority: str | None,
    start_date: date | None,
    end_date: date | None,
    amount: int | None,
    attachments: Iterable[Attachment],
) -> None:
    problems: dict[str, str] = {}
    for name, value in (
        ("employee_id", employee_id),
        ("employee_name", employee_name),
        ("request_type", request_type),
    ):
        if _blank(value):
            problems[name] = "is required"

    if priority not in PRIORITIES:
        problems["priority"] = f"must be one of {', '.join(PRIORITIES)}"
    if amount is not None and amount < 0:
        problems["amount"] = "must not be negative"
    if start_date and end_date and end_date < start_date:
        problems["end_date"] = "must not be before start_date"

    for index, attachment in enumerate(attachments):
        if _blank(attachment.file_name) or _blank(attachment.file_path):
            problems[f"attachments[{index}]"] = "file_name and file_path are required"

    if problems:
        raise ValidationError(problems)


def create_request(
    db: Session,
    *,
    employee_id: str,
    employee_name: str,
    request_type: str,
    priority: str | None = "medium",
    description: str | None = None,
    reason: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    amount: int | None = None,
    attachments: Iterable[Attachment] = (),
    request_id: str | None = None,
    id_prefix: str = "REQ",
) -> Request:
    """
    Stage a new request in `pending` with its submission history entry.
    Nothing is committed here; the caller owns the transaction.
    """
    attachments = tuple(attachments)
    priority = (priority or "medium").strip().lower()
    validate_new_request(
        employee_id=employee_id,
        employee_name=employee_name,
        request_type=request_type,
        priority=priority,
        start_date=start_date,
        end_date=end_date,
        amount=amount,
        attachments=attachments,
    )

    submitted = history_entry(SUBMITTED_ACTION, employee_name.strip())
    req = Request(
        id=request_id or generate_request_id(id_prefix),
        employee_id=employee_id.strip(),
        employee_name=employee_name.strip(),
        request_type=request_type.strip(),
        priority=priority,
        description=description or "",
        reason=reason,
        start_date=start_date,
        end_date=end_date,
        amount=amount,
        status=INITIAL_STATUS,
        version=1,
        submission_date=submitted.timestamp,
        attachments=[
            RequestAttachment(
                position=position,
                file_name=a.file_name,
                file_path=a.file_path,
                file_type=a.file_type,
            )
            for position, a in enumerate(attachments)
        ],
        comments=[],
        history=[
            RequestHistoryEntry(
                position=0,
                action=submitted.action,
                author=submitted.author,
                created_at=submitted.timestamp,
            )
        ],
    )
    db.add(req)
    db.flush()
    return req


def get_request(db: Session, request_id: str) -> Request:
    req = db.get(Request, request_id)
    if not req:
        raise NotFoundError(entity="Request", entity_id=request_id)
    return req


def list_requests(db: Session, filters: RequestFilter | None = None, limit: int | None = None) -> list[Request]:
    """Requests newest first; filtering never writes."""
    filters = filters or RequestFilter()
    stmt = select(Request).order_by(Request.submission_date.desc(), Request.id.desc())

    if filters.status:
        stmt = stmt.where(Request.status == filters.status)
    if filters.request_type:
        stmt = stmt.where(Request.request_type == filters.request_type)
    if filters.bucket:
        statuses = BUCKETS.get(filters.bucket)
        if statuses is None:
            raise ValidationError({"bucket": f"must be one of {', '.join(BUCKETS)}"})
        stmt = stmt.where(Request.status.in_(sorted(statuses)))
    search = (filters.search_text or "").strip()
    if search:
        stmt = stmt.where(
            Request.employee_name.icontains(search, autoescape=True)
            | Request.request_type.icontains(search, autoescape=True)
            | Request.id.icontains(search, autoescape=True)
        )
    if limit is not None:
        stmt = stmt.limit(limit)

    return list(db.scalars(stmt).all())


def _history_entries(req: Request) -> tuple[HistoryEntry, ...]:
    return tuple(HistoryEntry(action=h.action, author=h.author, timestamp=h.created_at) for h in req.history)


def _comment_entries(req: Request) -> tuple[CommentEntry, ...]:
    return tuple(
        CommentEntry(author=c.author, role=c.role, comment=c.comment, timestamp=c.created_at)
        for c in req.comments
    )


def _bump_version(db: Session, req: Request, expected_version: int, **values) -> None:
    result = db.execute(
        update(Request)
        .where(Request.id == req.id, Request.version == expected_version)
        .values(version=expected_version + 1, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConcurrentUpdateError(operation=f"update request {req.id}")


def _stage_comment(db: Session, req: Request, entry: CommentEntry) -> None:
    comments = append(_comment_entries(req), entry)
    staged = comments[-1]
    db.add(
        RequestComment(
            request_id=req.id,
            position=len(comments) - 1,
            author=staged.author,
            role=staged.role,
            comment=staged.comment,
            created_at=staged.timestamp,
        )
    )


def apply_transition(
    db: Session,
    request_id: str,
    *,
    expected_version: int,
    new_status: str,
    new_history_entry: HistoryEntry,
    new_comment_entry: CommentEntry | None = None,
) -> Request:
    """
    Replace the status and append exactly one history entry (and at most one
    comment) in the caller's transaction. The write only lands if the row is
    still at `expected_version`.
    """
    req = get_request(db, request_id)
    history = append(_history_entries(req), new_history_entry)

    _bump_version(db, req, expected_version, status=new_status)

    staged = history[-1]
    db.add(
        RequestHistoryEntry(
            request_id=req.id,
            position=len(history) - 1,
            action=staged.action,
            author=staged.author,
            created_at=staged.timestamp,
        )
    )
    if new_comment_entry is not None:
        _stage_comment(db, req, new_comment_entry)

    db.flush()
    db.expire(req)
    return req


def append_comment(db: Session, request_id: str, *, expected_version: int, new_comment_entry: CommentEntry) -> Request:
    """Append a comment without touching the status."""
    req = get_request(db, request_id)
    _bump_version(db, req, expected_version)
    _stage_comment(db, req, new_comment_entry)
    db.flush()
    db.expire(req)
    return req


def delete_request(db: Session, request_id: str) -> None:
    """Remove a request and its child rows permanently."""
    get_request(db, request_id)
    for model in (RequestHistoryEntry, RequestComment, RequestAttachment):
        db.execute(delete(model).where(model.request_id == request_id))
    db.execute(delete(Request).where(Request.id == request_id))
    db.flush()


def summarize_requests(db: Session) -> dict:
    rows = db.execute(
        select(Request.status, Request.request_type, func.count(Request.id)).group_by(
            Request.status, Request.request_type
        )
    ).all()

    by_status = {status: 0 for status in STATUSES}
    by_type: dict[str, int] = {}
    by_bucket = {bucket: 0 for bucket in BUCKETS}
    total = 0
    for status, request_type, count in rows:
        total += count
        by_status[status] = by_status.get(status, 0) + count
        by_type[request_type] = by_type.get(request_type, 0) + count
        for bucket, statuses in BUCKETS.items():
            if status in statuses:
                by_bucket[bucket] += count

    return {
        "total": total,
        "by_status": by_status,
        "by_bucket": by_bucket,
        "by_type": dict(sorted(by_type.items())),
        "generated_at": isoformat_utc(utcnow()),
    }


def export_rows(db: Session) -> list[dict]:
    """Finalized requests flattened for spreadsheet export."""
    rows = db.scalars(
        select(Request)
        .where(Request.status.in_(sorted(TERMINAL_STATUSES)))
        .order_by(Request.submission_date.desc(), Request.id.desc())
    ).all()
    return [
        {
            "id": r.id,
            "employee_id": r.employee_id,
            "employee_name": r.employee_name,
            "request_type": r.request_type,
            "status": r.status,
            "priority": r.priority,
            "submission_date": isoformat_utc(r.submission_date),
            "start_date": r.start_date.isoformat() if r.start_date else None,
            "end_date": r.end_date.isoformat() if r.end_date else None,
            "amount": r.amount,
            "description": r.description,
            "reason": r.reason,
            "comments": len(r.comments),
            "history": len(r.history),
            "attachments": len(r.attachments),
        }
        for r in rows
    ]


def request_item(req: Request) -> dict:
    return {
        "id": req.id,
        "employee_id": req.employee_id,
        "employee_name": req.employee_name,
        "request_type": req.request_type,
        "status": req.status,
        "priority": req.priority,
        "description": req.description,
        "reason": req.reason,
        "start_date": req.start_date.isoformat() if req.start_date else None,
        "end_date": req.end_date.isoformat() if req.end_date else None,
        "amount": req.amount,
        "submission_date": isoformat_utc(req.submission_date),
        "version": req.version,
        "attachments": [
            {"file_name": a.file_name, "file_path": a.file_path, "file_type": a.file_type}
            for a in req.attachments
        ],
        "comments": [
            {
                "author": c.author,
                "role": c.role,
                "comment": c.comment,
                "timestamp": isoformat_utc(c.created_at),
            }
            for c in req.comments
        ],
        "history": [
            {"action": h.action, "author": h.author, "timestamp": isoformat_utc(h.created_at)}
            for h in req.history
        ],
    }
