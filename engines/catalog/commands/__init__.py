"""
Storefront Catalog — Request Commands
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from core.primitives.money import to_money


@dataclass(frozen=True)
class ProductUpsertRequest:
    name: str
    price: Decimal
    category_id: Optional[Any] = None
    description: str = ""
    image_url: str = ""
    stock: int = 0

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("name is required.")
        object.__setattr__(self, "name", self.name.strip())

        price = to_money(self.price)
        if price < 0:
            raise ValueError("price must be >= 0.")
        object.__setattr__(self, "price", price)

        try:
            stock = int(self.stock or 0)
        except (TypeError, ValueError) as exc:
            raise ValueError("stock must be an integer.") from exc
        if stock < 0:
            raise ValueError("stock must be >= 0.")
        object.__setattr__(self, "stock", stock)
        object.__setattr__(self, "description", (self.description or "").strip())
        object.__setattr__(self, "image_url", (self.image_url or "").strip())


@dataclass(frozen=True)
class CategoryCreateRequest:
    name: str
    description: str = ""

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("name is required.")
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "description", (self.description or "").strip())
