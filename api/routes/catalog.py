"""
api/routes/catalog.py -- Public read-only demo listings.

Routes:
  GET /api/users     -- fixed demo users
  GET /api/products  -- fixed product catalog

Auth policy: both public. No rate limit -- these are the load-test targets.
"""

from __future__ import annotations

from fastapi import APIRouter

from api.models import DemoUserResponse, ProductResponse
from core.catalog import list_products, list_users

router = APIRouter()


@router.get("/users", response_model=list[DemoUserResponse])
async def users() -> list[DemoUserResponse]:
    return [DemoUserResponse.from_domain(u) for u in list_users()]


@router.get("/products", response_model=list[ProductResponse])
async def products() -> list[ProductResponse]:
    return [ProductResponse.from_domain(p) for p in list_products()]
