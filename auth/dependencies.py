"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The bearer token is read from "Authorization: Bearer <token>" and handed to
the SessionValidator stored on app.state by the lifespan. Failures raise the
auth/errors.py exceptions; api/main.py turns them into structured responses,
so these helpers never build HTTP errors themselves.

get_identity() requires a valid token (401 otherwise).
require_admin() wraps get_identity() and requires role=admin (403 otherwise).

auth/dependencies.py may import from fastapi (for Request) because this
module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.errors import Unauthenticated
from auth.models import AuthenticatedIdentity, Role
from auth.policy import require_role
from auth.session import SessionValidator, extract_bearer_token

logger = logging.getLogger("devops_api.auth")


def get_identity(request: Request) -> AuthenticatedIdentity:
    """Require authentication. The identity is also stored on request.state.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(identity: AuthenticatedIdentity = Depends(get_identity)): ...
    """
    validator: SessionValidator = request.app.state.session_validator
    token = extract_bearer_token(request.headers.get("Authorization"))
    try:
        identity = validator.validate(token)
    except Unauthenticated as exc:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.reason.value)
        raise
    request.state.identity = identity
    return identity


def require_admin(request: Request) -> AuthenticatedIdentity:
    """Require role=admin. Raises Unauthenticated (401) or Forbidden (403)."""
    return require_role(get_identity(request), Role.admin)
