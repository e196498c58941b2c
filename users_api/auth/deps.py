from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from users_api.errors import InternalError
from users_api.models import Identity

from .authenticator import Authenticator
from .gate import AccessGate


_bearer = HTTPBearer(auto_error=False)


def get_gate(request: Request) -> AccessGate:
    gate = getattr(request.app.state, "gate", None)
    if gate is None:
        raise InternalError("server_config_missing")
    return gate


def get_authenticator(request: Request) -> Authenticator:
    authenticator = getattr(request.app.state, "authenticator", None)
    if authenticator is None:
        raise InternalError("server_config_missing")
    return authenticator


def require_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    gate: AccessGate = Depends(get_gate),
) -> Identity:
    """Authenticate a request from its `Authorization: Bearer <jwt>` header.

    The identity is also attached to `request.state.identity` for handlers
    that only have the request at hand.
    """

    token = credentials.credentials if credentials is not None else None
    identity = gate.authorize(token)
    request.state.identity = identity
    return identity
