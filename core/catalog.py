"""
core/catalog.py -- Fixed demo data served by the public listing endpoints.

The listings never change at runtime. created_at is stamped at call time so
clients see a fresh timestamp on every request.
"""

from datetime import datetime, timezone

from core.models import DemoUser, Product

_USERS = (
    (1, "Mario Rossi", "mario@example.com"),
    (2, "Laura Bianchi", "laura@example.com"),
    (3, "Giuseppe Verdi", "giuseppe@example.com"),
)

_PRODUCTS = (
    Product(id=1, name="Laptop", price=999.99, stock=15),
    Product(id=2, name="Mouse", price=29.99, stock=100),
    Product(id=3, name="Tastiera", price=79.99, stock=50),
    Product(id=4, name="Monitor", price=299.99, stock=25),
)


def list_users() -> list[DemoUser]:
    now = datetime.now(timezone.utc)
    return [DemoUser(id=uid, name=name, email=email, created_at=now) for uid, name, email in _USERS]


def list_products() -> list[Product]:
    return list(_PRODUCTS)
