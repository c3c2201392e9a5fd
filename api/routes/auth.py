"""
api/routes/auth.py -- Login, logout and token verification endpoints.

Routes:
  POST /api/auth/login   -- credential check; returns a bearer token
  POST /api/auth/logout  -- revokes the presented token (requires auth)
  GET  /api/auth/verify  -- echoes the authenticated username (requires auth)

Security:
  [H2] POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  [C1] CredentialStore.authenticate() provides timing equalization -- use it,
       never compare passwords inline.
  [M5] Cache-Control: no-store on login responses.
  Logout goes through the same gate as every protected route, so logging out
  an already revoked or invalid token is itself a 401.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, MessageResponse, VerifyResponse
from auth.dependencies import get_current_identity
from auth.gate import AuthGate
from auth.models import Identity
from auth.store import CredentialStore
from auth.tokens import TokenCodec
from core.config import get_settings

logger = logging.getLogger("tokengate.api")

_settings = get_settings()

# Auth policy:
# - POST /api/auth/login:   public -- login endpoint must be unauthenticated
# - POST /api/auth/logout:  requires auth (get_current_identity)
# - GET  /api/auth/verify:  requires auth (get_current_identity)
router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(_settings.login_rate_limit)  # [H2] must be BELOW @router so the registered endpoint is the limited one
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a signed bearer token.

    Returns the same generic error for wrong username and wrong password
    ("bad_credentials") to avoid leaking username existence information.
    """
    credentials: CredentialStore = request.app.state.credentials
    codec: TokenCodec = request.app.state.token_codec

    username = credentials.authenticate(body.username, body.password)
    if username is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid credentials"}},
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    token = codec.issue(username)
    logger.info("User %s logged in", username)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=token,
            expires_in=codec.ttl_seconds,
            username=username,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, identity: Identity = Depends(get_current_identity)) -> MessageResponse:
    """Revoke the presented token so it can never authenticate again."""
    gate: AuthGate = request.app.state.auth_gate
    gate.revoke(identity)
    logger.info("User %s logged out", identity.username)
    return MessageResponse(message="Logout successful")


@router.get("/auth/verify", response_model=VerifyResponse)
def verify(identity: Identity = Depends(get_current_identity)) -> VerifyResponse:
    """Return the identity the presented token authenticates as."""
    return VerifyResponse(username=identity.username)
