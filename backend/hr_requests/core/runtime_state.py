from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


_state_lock = Lock()
_runtime_state: dict[str, object] = {
    "started_at": None,
    "shutdown_started_at": None,
    "shutdown_completed_at": None,
    "shutdown_duration_ms": None,
    "is_shutting_down": False,
    "notifications_delivered": 0,
    "notifications_failed": 0,
    "notifications_dropped": 0,
    "last_notification_failure_at": None,
}

_NOTIFICATION_COUNTERS = {
    "delivered": "notifications_delivered",
    "failed": "notifications_failed",
    "dropped": "notifications_dropped",
}


def mark_startup() -> None:
    with _state_lock:
        _runtime_state["started_at"] = _utcnow_iso()
        _runtime_state["shutdown_started_at"] = None
        _runtime_state["shutdown_completed_at"] = None
        _runtime_state["shutdown_duration_ms"] = None
        _runtime_state["is_shutting_down"] = False


def mark_shutdown_started() -> str:
    with _state_lock:
        shutdown_started_at = _utcnow_iso()
        _runtime_state["shutdown_started_at"] = shutdown_started_at
        _runtime_state["is_shutting_down"] = True
        return shutdown_started_at


def mark_shutdown_completed(duration_ms: float) -> None:
    with _state_lock:
        _runtime_state["shutdown_completed_at"] = _utcnow_iso()
        _runtime_state["shutdown_duration_ms"] = round(duration_ms, 2)


def is_shutting_down() -> bool:
    with _state_lock:
        return bool(_runtime_state["is_shutting_down"])


def record_notification_outcome(outcome: str) -> None:
    """Count a notification delivery outcome: delivered, failed or dropped."""
    key = _NOTIFICATION_COUNTERS.get(outcome)
    if key is None:
        return
    with _state_lock:
        _runtime_state[key] = int(_runtime_state[key]) + 1
        if outcome != "delivered":
            _runtime_state["last_notification_failure_at"] = _utcnow_iso()


def snapshot_runtime_state() -> dict[str, object]:
    with _state_lock:
        return dict(_runtime_state)
