from __future__ import annotations

from dataclasses import dataclass, field


class RequestWorkflowError(Exception):
    """Base class for errors surfaced by the request lifecycle engine."""

    code = "REQUEST_WORKFLOW_ERROR"

    def as_dict(self) -> dict:
        return {"code": self.code, "message": str(self)}


@dataclass
class ValidationError(RequestWorkflowError):
    fields: dict[str, str]

    code = "VALIDATION_ERROR"

    def __str__(self) -> str:
        return "; ".join(f"{name}: {problem}" for name, problem in self.fields.items())

    def as_dict(self) -> dict:
        return {"code": self.code, "message": "Request payload is invalid", "fields": dict(self.fields)}


@dataclass
class NotFoundError(RequestWorkflowError):
    entity: str
    entity_id: str

    code = "NOT_FOUND"

    def __str__(self) -> str:
        return f"{self.entity} {self.entity_id} not found"

    def as_dict(self) -> dict:
        return {"code": self.code, "message": str(self), "entity": self.entity, "id": self.entity_id}


@dataclass
class InvalidTransitionError(RequestWorkflowError):
    current: str
    attempted: str
    reason: str = "transition not allowed"

    code = "INVALID_TRANSITION"

    def __str__(self) -> str:
        return f"Cannot move request from '{self.current}' to '{self.attempted}': {self.reason}"

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": str(self),
            "current_status": self.current,
            "attempted_status": self.attempted,
        }


@dataclass
class NoOpTransitionError(RequestWorkflowError):
    status: str

    code = "NO_OP_TRANSITION"

    def __str__(self) -> str:
        return f"Request is already '{self.status}'"


@dataclass
class StorageError(RequestWorkflowError):
    operation: str
    detail: str = "storage unavailable"

    code = "STORAGE_ERROR"

    def __str__(self) -> str:
        return f"{self.operation} failed: {self.detail}"

    def as_dict(self) -> dict:
        return {"code": self.code, "message": str(self), "retryable": True}


@dataclass
class ConcurrentUpdateError(StorageError):
    detail: str = "request was modified concurrently"

    code = "CONCURRENT_UPDATE"


@dataclass
class NotificationDeliveryError(RequestWorkflowError):
    recipient_user_id: str
    title: str
    attempts: int = 1

    code = "NOTIFICATION_DELIVERY_FAILED"

    def __str__(self) -> str:
        return f"Notification '{self.title}' for {self.recipient_user_id} not delivered after {self.attempts} attempt(s)"


@dataclass
class AuditLogImmutableError(RequestWorkflowError):
    entity: str
    operation: str
    details: dict = field(default_factory=dict)

    code = "AUDIT_LOG_IMMUTABLE"

    def __str__(self) -> str:
        return f"{self.entity} rows are append-only; {self.operation} rejected"
