"""
API request and response models for TokenGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in core/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from core.models import DemoUser, Product

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login.

    max_length keeps passwords well below bcrypt's 72-byte input limit for
    ordinary input and bounds the work an attacker can make us do.
    """

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    message: str = "Login successful"
    token_type: str = "bearer"
    expires_in: int
    username: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class VerifyResponse(BaseModel):
    """Response for GET /api/auth/verify -- echoes the authenticated identity."""

    model_config = ConfigDict(frozen=True)

    authenticated: bool = True
    username: str
    message: str = "Token is valid"


# ---------------------------------------------------------------------------
# Demo catalog
# ---------------------------------------------------------------------------


class DemoUserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    created_at: datetime

    @classmethod
    def from_domain(cls, user: DemoUser) -> "DemoUserResponse":
        return cls(id=user.id, name=user.name, email=user.email, created_at=user.created_at)


class ProductResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    price: float
    stock: int

    @classmethod
    def from_domain(cls, product: Product) -> "ProductResponse":
        return cls(id=product.id, name=product.name, price=product.price, stock=product.stock)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class FileUploadResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    size: int
    message: str = "File uploaded successfully"


# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    time: datetime
