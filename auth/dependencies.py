"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Protected routes declare `identity: Identity = Depends(get_current_identity)`.
The dependency hands the Authorization header to the AuthGate stored on
app.state at startup and turns any AuthenticationError into HTTP 401.

The gate's error code survives in the response body ("auth_missing",
"token_revoked", "invalid_token") while the status stays a uniform 401.

Layer rule: no imports from api/ or files/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.gate import AuthenticationError, AuthGate
from auth.models import Identity


def get_current_identity(request: Request) -> Identity:
    """Require a valid, non-revoked bearer token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(get_current_identity)): ...
    """
    gate: AuthGate = request.app.state.auth_gate
    try:
        return gate.admit(request.headers.get("Authorization"))
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=401,
            detail={"code": exc.code, "message": exc.message},
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
