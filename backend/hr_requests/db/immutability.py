"""
ORM guards for the append-only request audit rows.

History entries, comments and attachment metadata are inserted once and never
touched again through the ORM. An UPDATE or DELETE flushed for one of these
rows raises `AuditLogImmutableError` before any SQL reaches the database and
the surrounding transaction is rolled back by the caller.

The administrative request delete removes child rows with bulk statements,
which do not fire mapper events.
"""
from __future__ import annotations

import logging

from sqlalchemy import event

from hr_requests.core.errors import AuditLogImmutableError
from hr_requests.db.models import RequestAttachment, RequestComment, RequestHistoryEntry

logger = logging.getLogger("hr_requests.db.immutability")

_APPEND_ONLY_MODELS = (RequestHistoryEntry, RequestComment, RequestAttachment)


def _reject_update(mapper, connection, target) -> None:
    raise AuditLogImmutableError(
        entity=type(target).__name__,
        operation="update",
        details={"request_id": target.request_id, "position": target.position},
    )


def _reject_delete(mapper, connection, target) -> None:
    raise AuditLogImmutableError(
        entity=type(target).__name__,
        operation="delete",
        details={"request_id": target.request_id, "position": target.position},
    )


def register_immutability_listeners() -> None:
    """Install the guards; safe to call more than once."""
    for model in _APPEND_ONLY_MODELS:
        if not event.contains(model, "before_update", _reject_update):
            event.listen(model, "before_update", _reject_update)
        if not event.contains(model, "before_delete", _reject_delete):
            event.listen(model, "before_delete", _reject_delete)
    logger.debug("Append-only guards registered for %s", [m.__name__ for m in _APPEND_ONLY_MODELS])
