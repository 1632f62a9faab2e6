from __future__ import annotations

from dataclasses import dataclass


@dataclass
class AuthorizationError(PermissionError):
    code: str
    explanation: str
    next_actions: list[str]

    def __str__(self) -> str:
        return self.explanation

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "explanation": self.explanation,
            "next_actions": self.next_actions,
        }


EMPLOYEE_PERMS = [
    "requests:create",
    "requests:read",
    "requests:comment",
    "requests:update_status",
    "notifications:list",
]

APPROVER_EXTRA_PERMS = [
    "requests:summary",
]

ADMIN_EXTRA_PERMS = [
    "requests:delete",
    "requests:export",
    "notifications:list_all",
    "ops:metrics",
]

ROLE_TO_PERMS: dict[str, frozenset[str]] = {
    "employee": frozenset(EMPLOYEE_PERMS),
    "manager": frozenset(EMPLOYEE_PERMS + APPROVER_EXTRA_PERMS),
    "ceo": frozenset(EMPLOYEE_PERMS + APPROVER_EXTRA_PERMS),
    "admin": frozenset(EMPLOYEE_PERMS + APPROVER_EXTRA_PERMS + ADMIN_EXTRA_PERMS),
}


@dataclass(frozen=True)
class Identity:
    user_id: str
    name: str
    role: str
    permissions: frozenset[str]


def resolve_identity(claims: dict) -> Identity:
    """Build the caller identity from verified token claims."""
    user_id = str(claims.get("sub") or "").strip()
    if not user_id:
        raise AuthorizationError(
            code="MISSING_SUBJECT",
            explanation="Token does not identify a user",
            next_actions=["Sign in again to obtain a fresh token."],
        )

    role = str(claims.get("role") or "").strip().lower()
    permissions = ROLE_TO_PERMS.get(role)
    if permissions is None:
        raise AuthorizationError(
            code="UNKNOWN_ROLE",
            explanation=f"Role '{role or '-'}' is not recognised",
            next_actions=["Ask an administrator to assign a valid role."],
        )

    name = str(claims.get("name") or "").strip() or user_id
    return Identity(user_id=user_id, name=name, role=role, permissions=permissions)


def require(identity: Identity, perm: str):
    """Check if the identity has the required permission."""
    if perm not in identity.permissions:
        raise AuthorizationError(
            code="MISSING_PERMISSION",
            explanation=f"Missing required permission: {perm}",
            next_actions=["Ask an administrator for a role that includes this permission."],
        )
