from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
import logging
from threading import Lock
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_requests.core.errors import NotFoundError, NotificationDeliveryError
from hr_requests.core.runtime_state import record_notification_outcome
from hr_requests.core.time import isoformat_utc, utcnow
from hr_requests.db.models import Notification

logger = logging.getLogger("hr_requests.notifications")


@dataclass(frozen=True)
class NotificationIntent:
    recipient_user_id: str
    title: str
    body: str
    notification_type: str = "default"
    attempts: int = 0


def create_notification(
    db: Session,
    *,
    recipient_user_id: str | None,
    title: str,
    body: str,
    notification_type: str = "default",
) -> Notification:
    notification = Notification(
        recipient_user_id=recipient_user_id or "system",
        title=title,
        body=body,
        type=notification_type,
        is_read=False,
        created_at=utcnow(),
    )
    db.add(notification)
    db.flush()
    return notification


def mark_notification_read(
    db: Session,
    notification_id: int,
    *,
    recipient_user_id: str | None = None,
) -> Notification:
    """
    Flip `is_read` to true; calling it again is harmless.
    With `recipient_user_id`, another recipient's notification reads as missing.
    """
    notification = db.get(Notification, notification_id)
    if not notification or (recipient_user_id is not None and notification.recipient_user_id != recipient_user_id):
        raise NotFoundError(entity="Notification", entity_id=str(notification_id))
    if not notification.is_read:
        notification.is_read = True
        db.flush()
    return notification


def list_notifications(
    db: Session,
    recipient_user_id: str,
    *,
    unread_only: bool = False,
    limit: int = 100,
) -> list[Notification]:
    stmt = select(Notification).where(Notification.recipient_user_id == recipient_user_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    return list(
        db.scalars(
            stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        ).all()
    )


def notification_item(n: Notification) -> dict:
    return {
        "id": n.id,
        "recipient_user_id": n.recipient_user_id,
        "title": n.title,
        "body": n.body,
        "type": n.type,
        "is_read": n.is_read,
        "created_at": isoformat_utc(n.created_at),
    }


class NotificationDispatcher:
    """
    Best-effort delivery of notifications triggered by request events.

    Producers call `enqueue()` after their own transaction has committed; a
    background loop calls `drain()` which persists each intent in its own
    transaction. Nothing here raises into the producer.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        max_attempts: int = 3,
        max_pending: int = 1024,
    ):
        self._session_factory = session_factory
        self._max_attempts = max(1, int(max_attempts))
        self._max_pending = max(1, int(max_pending))
        self._pending: deque[NotificationIntent] = deque()
        self._lock = Lock()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def enqueue(self, intent: NotificationIntent) -> None:
        with self._lock:
            if len(self._pending) >= self._max_pending:
                dropped = self._pending.popleft()
                logger.warning(
                    "Notification queue full; dropping oldest intent title=%r recipient=%s",
                    dropped.title,
                    dropped.recipient_user_id,
                )
                record_notification_outcome("dropped")
            self._pending.append(intent)

    def notify(
        self,
        recipient_user_id: str | None,
        title: str,
        body: str,
        notification_type: str = "default",
    ) -> Notification | None:
        """
        Persist one notification now. Failures are logged and reported as
        `None`, never raised.
        """
        intent = NotificationIntent(
            recipient_user_id=recipient_user_id or "system",
            title=title,
            body=body,
            notification_type=notification_type,
        )
        try:
            return self._deliver(intent)
        except Exception:
            logger.exception("Failed to deliver notification title=%r recipient=%s", title, intent.recipient_user_id)
            record_notification_outcome("failed")
            return None

    def drain(self, limit: int = 100) -> int:
        """
        Deliver up to `limit` of the intents queued when the call starts.
        Failed intents go back to the end of the queue for the next drain
        until they run out of attempts. Returns the number delivered.
        """
        delivered = 0
        for _ in range(min(limit, self.pending_count)):
            with self._lock:
                if not self._pending:
                    break
                intent = self._pending.popleft()

            try:
                self._deliver(intent)
            except Exception as exc:
                attempts = intent.attempts + 1
                failure = NotificationDeliveryError(
                    recipient_user_id=intent.recipient_user_id,
                    title=intent.title,
                    attempts=attempts,
                )
                if attempts >= self._max_attempts:
                    logger.error("%s; giving up (%s)", failure, exc)
                    record_notification_outcome("dropped")
                else:
                    logger.warning("%s; will retry (%s)", failure, exc)
                    record_notification_outcome("failed")
                    with self._lock:
                        self._pending.append(replace(intent, attempts=attempts))
                continue

            delivered += 1
        return delivered

    def _deliver(self, intent: NotificationIntent) -> Notification:
        with self._session_factory() as db:
            with db.begin():
                notification = create_notification(
                    db,
                    recipient_user_id=intent.recipient_user_id,
                    title=intent.title,
                    body=intent.body,
                    notification_type=intent.notification_type,
                )
            db.refresh(notification)
            db.expunge(notification)
        record_notification_outcome("delivered")
        logger.info(
            "Notification %s delivered to %s (%s)",
            notification.id,
            intent.recipient_user_id,
            intent.notification_type,
        )
        return notification
