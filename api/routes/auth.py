"""
api/routes/auth.py -- Login, profile, admin and logout endpoints.

Routes:
  POST /api/auth/login    -- credentials -> token + user summary
  GET  /api/auth/profile  -- caller's own identity (requires auth)
  GET  /api/auth/admin    -- sanitized user list (requires admin)
  POST /api/auth/logout   -- acknowledgment only (requires auth)

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  Cache-Control: no-store on login responses.
  Logout has no server-side effect: tokens are stateless and there is no
  revocation store, so a token stays valid until it expires.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import AdminResponse, LoginRequest, LoginResponse, MessageResponse, ProfileResponse, ProfileUser, UserSummary
from auth.credentials import authenticate_user
from auth.dependencies import get_identity, require_admin
from auth.models import AuthenticatedIdentity
from auth.store import CredentialStore
from auth.tokens import TokenCodec
from core.config import get_settings

# Auth policy:
# - POST /api/auth/login:    public -- login endpoint must be unauthenticated
# - GET  /api/auth/profile:  requires auth (get_identity)
# - GET  /api/auth/admin:    requires admin (require_admin)
# - POST /api/auth/logout:   requires auth (get_identity)
router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
# router must register the limiter wrapper; SlowAPIMiddleware skips decorated routes
@limiter.limit(get_settings().login_rate_limit)
def login(request: Request, body: Optional[LoginRequest] = None) -> JSONResponse:
    """Authenticate with username and password; return a session token.

    Missing or empty fields -> 400 bad_request. Unknown username and wrong
    password both -> 401 invalid_credentials.
    """
    store: CredentialStore = request.app.state.credential_store
    codec: TokenCodec = request.app.state.token_codec
    settings = request.app.state.settings

    body = body or LoginRequest()
    user = authenticate_user(store, body.username, body.password, settings.credential_scheme)
    token = codec.encode(user, settings.token_ttl_ms)

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(token=token, user=UserSummary.from_record(user)).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/profile", response_model=ProfileResponse)
async def profile(identity: AuthenticatedIdentity = Depends(get_identity)) -> ProfileResponse:
    """Return the caller's identity as carried by the token."""
    return ProfileResponse(user=ProfileUser.from_identity(identity))


@router.get("/auth/admin", response_model=AdminResponse)
async def admin(request: Request, identity: AuthenticatedIdentity = Depends(require_admin)) -> AdminResponse:
    """Return every user (id, username, role). Admin only."""
    store: CredentialStore = request.app.state.credential_store
    return AdminResponse(users=[UserSummary.from_record(u) for u in store.list_users()])


@router.post("/auth/logout", response_model=MessageResponse)
async def logout(identity: AuthenticatedIdentity = Depends(get_identity)) -> MessageResponse:
    """Acknowledge logout. The token is not revoked (no session store)."""
    return MessageResponse(message="Logout successful")
