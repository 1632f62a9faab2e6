from __future__ import annotations

from typing import AsyncIterator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hr_requests.core.logging import reset_actor, set_actor
from hr_requests.security.authz import Identity, require, resolve_identity
from hr_requests.security.security import decode_token


auth_scheme = HTTPBearer()


def get_bearer_token(
    creds: HTTPAuthorizationCredentials = Depends(auth_scheme),
) -> str:
    return creds.credentials


async def get_current_identity(
    token: str = Depends(get_bearer_token),
) -> AsyncIterator[Identity]:
    identity = resolve_identity(decode_token(token))
    # Runs on the request task so the endpoint thread inherits it.
    actor_token = set_actor(identity.user_id, identity.role)
    try:
        yield identity
    finally:
        reset_actor(actor_token)


def require_permission(permission_name: str):
    def _dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        require(identity, permission_name)
        return identity

    return _dependency
