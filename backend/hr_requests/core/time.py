from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone


_frozen_now_ctx: ContextVar[datetime | None] = ContextVar("frozen_now", default=None)


def utcnow() -> datetime:
    """
    Server-assigned wall-clock reading in UTC.
    Honours a frozen instant set through `frozen_clock`.
    """
    frozen = _frozen_now_ctx.get()
    if frozen is not None:
        return frozen
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC value.
    Naive values are assumed to already be UTC (SQLite drops tzinfo).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_utc(value: datetime | None) -> str | None:
    if value is None:
        return None
    return ensure_utc(value).isoformat()


@contextmanager
def frozen_clock(instant: datetime):
    """Temporarily pin `utcnow()` for the current execution context."""
    token = _frozen_now_ctx.set(ensure_utc(instant))
    try:
        yield
    finally:
        _frozen_now_ctx.reset(token)
