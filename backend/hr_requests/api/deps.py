from __future__ import annotations

from fastapi import Request

from hr_requests.services.notifications import NotificationDispatcher


def get_notification_dispatcher(request: Request) -> NotificationDispatcher:
    """Dispatcher attached to the app at startup."""
    return request.app.state.notification_dispatcher
