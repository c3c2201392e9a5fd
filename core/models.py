"""
core/models.py -- Domain dataclasses for the demo catalog.

Pattern: Data class (pure data container, zero logic). Route handlers map
these onto the Pydantic response models in api/models.py.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class DemoUser:
    id: int
    name: str
    email: str
    created_at: datetime


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    price: float
    stock: int
