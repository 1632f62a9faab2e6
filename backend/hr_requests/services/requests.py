"""
Request lifecycle use cases.

Each mutating call commits its own unit of work before any notification is
queued, so a notification problem can never undo or block a submission or a
transition. Reads inside a use case map storage failures the same way.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
import logging
from typing import Iterable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hr_requests.core.errors import (
    ConcurrentUpdateError,
    NoOpTransitionError,
    RequestWorkflowError,
    StorageError,
    ValidationError,
)
from hr_requests.db.models import Request
from hr_requests.domain.audit import Attachment, comment_entry
from hr_requests.domain.workflow import decide_transition
from hr_requests.security.authz import Identity, require
from hr_requests.services import request_store
from hr_requests.services.notifications import NotificationDispatcher, NotificationIntent

logger = logging.getLogger("hr_requests.requests")


@dataclass(frozen=True)
class StatusUpdateResult:
    request: Request
    changed: bool
    notice: str | None = None


@contextmanager
def _storage_errors(db: Session, operation: str):
    """Roll back and translate database failures into workflow errors."""
    try:
        yield
    except RequestWorkflowError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.warning("%s hit a constraint violation: %s", operation, exc.orig)
        raise ConcurrentUpdateError(operation=operation) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("%s failed in storage", operation)
        raise StorageError(operation=operation, detail=exc.__class__.__name__) from exc


@contextmanager
def _unit_of_work(db: Session, operation: str):
    with _storage_errors(db, operation):
        yield
        db.commit()


def _load_request(db: Session, request_id: str, operation: str) -> Request:
    with _storage_errors(db, operation):
        return request_store.get_request(db, request_id)


def _announce(dispatcher: NotificationDispatcher, intent: NotificationIntent) -> None:
    try:
        dispatcher.enqueue(intent)
    except Exception:
        logger.exception("Could not queue notification %r for %s", intent.title, intent.recipient_user_id)


def submit_request(
    db: Session,
    dispatcher: NotificationDispatcher,
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
    id_prefix: str = "REQ",
    system_recipient: str = "system",
) -> Request:
    with _unit_of_work(db, "submit request"):
        req = request_store.create_request(
            db,
            employee_id=employee_id,
            employee_name=employee_name,
            request_type=request_type,
            priority=priority,
            description=description,
            reason=reason,
            start_date=start_date,
            end_date=end_date,
            amount=amount,
            attachments=attachments,
            id_prefix=id_prefix,
        )
        request_id = req.id

    logger.info("Request %s submitted by employee %s (%s)", request_id, req.employee_id, req.request_type)
    _announce(
        dispatcher,
        NotificationIntent(
            recipient_user_id=system_recipient,
            title="New request submitted",
            body=f"{req.employee_name} submitted a {req.request_type} request ({request_id}).",
            notification_type="request.submitted",
        ),
    )
    return req


def update_request_status(
    db: Session,
    dispatcher: NotificationDispatcher,
    *,
    request_id: str,
    new_status: str,
    actor: Identity,
    comment: str | None = None,
    enforce_role_gates: bool = False,
) -> StatusUpdateResult:
    """
    Move a request to `new_status` on behalf of `actor`.

    A request already in `new_status` is reported as unchanged rather than
    failing, which lets clients retry a transition whose response they lost.
    Nothing is written in that case, the accompanying comment included;
    comments outside a transition go through `add_comment`.
    """
    req = _load_request(db, request_id, "update request status")
    comment = (comment or "").strip() or None

    try:
        decision = decide_transition(
            req.status,
            new_status,
            actor_name=actor.name,
            actor_role=actor.role,
            enforce_role_gates=enforce_role_gates,
        )
    except NoOpTransitionError as notice:
        logger.info("Request %s already %s; nothing to change", request_id, notice.status)
        return StatusUpdateResult(request=req, changed=False, notice=str(notice))

    with _unit_of_work(db, "update request status"):
        request_store.apply_transition(
            db,
            request_id,
            expected_version=req.version,
            new_status=decision.target,
            new_history_entry=decision.history_entry,
            new_comment_entry=comment_entry(actor.name, actor.role, comment) if comment else None,
        )

    req = _load_request(db, request_id, "update request status")
    logger.info("Request %s moved %s -> %s by %s", request_id, decision.current, decision.target, actor.user_id)
    _announce(
        dispatcher,
        NotificationIntent(
            recipient_user_id=req.employee_id,
            title="Request status updated",
            body=f"Your {req.request_type} request {req.id} is now {decision.target}.",
            notification_type="request.status_changed",
        ),
    )
    return StatusUpdateResult(request=req, changed=True)


def add_comment(
    db: Session,
    dispatcher: NotificationDispatcher,
    *,
    request_id: str,
    comment: str,
    actor: Identity,
) -> Request:
    """Append a comment outside the workflow; finalized requests accept comments too."""
    text = (comment or "").strip()
    if not text:
        raise ValidationError({"comment": "is required"})

    req = _load_request(db, request_id, "add comment")
    with _unit_of_work(db, "add comment"):
        request_store.append_comment(
            db,
            request_id,
            expected_version=req.version,
            new_comment_entry=comment_entry(actor.name, actor.role, text),
        )

    req = _load_request(db, request_id, "add comment")
    if actor.user_id != req.employee_id:
        _announce(
            dispatcher,
            NotificationIntent(
                recipient_user_id=req.employee_id,
                title="New comment on your request",
                body=f"{actor.name} commented on request {req.id}.",
                notification_type="request.commented",
            ),
        )
    return req


def delete_request(db: Session, *, request_id: str, actor: Identity) -> None:
    """Administrative removal; allowed from any status."""
    require(actor, "requests:delete")
    with _unit_of_work(db, "delete request"):
        request_store.delete_request(db, request_id)
    logger.info("Request %s deleted by %s", request_id, actor.user_id)
