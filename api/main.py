"""
api/main.py -- FastAPI application entry point for TokenGate.

Run with:      python main.py
               uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan builds every piece of shared state (credential store, token codec,
revocation set, auth gate, file store) and hangs it on app.state, so route
handlers and the auth dependency receive their collaborators instead of
reaching for module globals. Tests swap the lifespan to get fresh state.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.catalog import router as catalog_router
from api.routes.files import router as files_router
from auth.gate import AuthGate
from auth.revocation import RevocationSet
from auth.store import CredentialStore
from auth.tokens import TokenCodec
from core.config import get_settings
from files.store import FileStore

VERSION = "0.1.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("tokengate.api")

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval: int) -> None:
    """Evict expired entries from the revocation set every `interval` seconds.

    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine cleanly.
    """
    while True:
        await asyncio.sleep(interval)
        app.state.revocations.purge_expired()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build shared state on startup; stop the purge task on shutdown.

    Startup order matters: the gate needs the codec and the revocation set,
    and the purge task references app.state.revocations.
    """
    logger.info("TokenGate API starting up")
    app.state.credentials = CredentialStore(_settings.demo_users)
    app.state.token_codec = TokenCodec(_settings.secret_key, ttl_seconds=_settings.token_expire_seconds)
    app.state.revocations = RevocationSet()
    app.state.auth_gate = AuthGate(app.state.token_codec, app.state.revocations)
    app.state.file_store = FileStore(_settings.upload_dir, max_bytes=_settings.max_upload_bytes)
    logger.info("Upload directory ready at %s", app.state.file_store.root.resolve())
    app.state.purge_task = asyncio.create_task(_purge_loop(app, _settings.revocation_purge_seconds))

    yield

    app.state.purge_task.cancel()
    logger.info("TokenGate API shutdown complete (%d revoked tokens dropped)", len(app.state.revocations))


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="TokenGate API",
    description="Demo resources, bearer-token sessions with logout, and authenticated file transfer.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Starlette's add_middleware() wraps the existing stack, so the middleware
# registered LAST is the outermost. Register innermost first:
# SlowAPI, then CORS, then TrustedHost.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(catalog_router, prefix="/api", tags=["Catalog"])
app.include_router(files_router, prefix="/api", tags=["Files"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Registered on Starlette's base class so router-level 404/405 responses get
    the same envelope as HTTPException raised in route handlers, which carry
    detail={"code": ..., "message": ...}.
    When detail is already a structured dict, use it directly as the error
    field. Headers (e.g. WWW-Authenticate on 401) are passed through.
    """
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged only, never written to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No rate limit applied.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness, version and server time."""
    return HealthResponse(version=VERSION, time=datetime.now(timezone.utc))
