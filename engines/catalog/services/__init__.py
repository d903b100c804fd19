"""
Storefront Catalog — Service Layer
====================================
Read access to products plus the back office writers. After a
product is created its stock moves only through the conditional
decrement (order settlement) and restock (back office).
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count, F

from engines.catalog.commands import CategoryCreateRequest, ProductUpsertRequest
from engines.catalog.models import Category, Product

PAGE_SIZE = 6


class InsufficientStockError(Exception):
    """A conditional stock decrement found fewer units than requested."""

    def __init__(self, product_id: Any, quantity: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: {quantity} requested."
        )
        self.product_id = product_id
        self.quantity = quantity


def parse_uuid(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        return None


@dataclass(frozen=True)
class ProductPage:
    products: tuple[Product, ...]
    page: int
    pages: int
    total: int


def list_products(
    *,
    search: str = "",
    category_id: Any = None,
    page: int = 1,
    page_size: int = PAGE_SIZE,
) -> ProductPage:
    qs = Product.objects.select_related("category")
    if search:
        qs = qs.filter(name__icontains=search.strip())
    category_uuid = parse_uuid(category_id) if category_id else None
    if category_uuid is not None:
        qs = qs.filter(category_id=category_uuid)

    page = max(1, int(page or 1))
    total = qs.count()
    offset = (page - 1) * page_size
    products = tuple(qs[offset:offset + page_size])
    return ProductPage(
        products=products,
        page=page,
        pages=math.ceil(total / page_size) if total else 0,
        total=total,
    )


def list_categories() -> tuple[Category, ...]:
    return tuple(Category.objects.order_by("name"))


def get_product(product_id: Any) -> Optional[Product]:
    pk = parse_uuid(product_id)
    if pk is None:
        return None
    return Product.objects.select_related("category").filter(pk=pk).first()


def get_products_by_ids(product_ids: Iterable[Any]) -> dict[str, Product]:
    pks = {pk for pk in (parse_uuid(value) for value in product_ids) if pk is not None}
    if not pks:
        return {}
    return {str(product.pk): product for product in Product.objects.filter(pk__in=pks)}


def decrement_stock_if_available(product_id: Any, quantity: int) -> bool:
    """
    Atomically take `quantity` units. Returns False, changing nothing,
    when fewer than `quantity` units are on hand.
    """
    if quantity < 1:
        raise ValueError("quantity must be >= 1.")
    updated = Product.objects.filter(pk=product_id, stock__gte=quantity).update(
        stock=F("stock") - quantity
    )
    return updated == 1


def restock(product_id: Any, quantity: int) -> int:
    if quantity < 1:
        raise ValueError("quantity must be >= 1.")
    Product.objects.filter(pk=product_id).update(stock=F("stock") + quantity)
    return Product.objects.values_list("stock", flat=True).get(pk=product_id)


# ── Back office writers ───────────────────────────────────────

def _resolve_category(category_id: Any) -> Optional[Category]:
    if category_id in (None, ""):
        return None
    pk = parse_uuid(category_id)
    category = None if pk is None else Category.objects.filter(pk=pk).first()
    if category is None:
        raise ValueError(f"Category {category_id} not found.")
    return category


def create_product(request: ProductUpsertRequest) -> Product:
    return Product.objects.create(
        name=request.name,
        description=request.description,
        price=request.price,
        stock=request.stock,
        category=_resolve_category(request.category_id),
        image_url=request.image_url,
    )


def update_product(product: Product, request: ProductUpsertRequest) -> Product:
    """Stock is not written here; it only moves through restock and settlement."""
    product.name = request.name
    product.description = request.description
    product.price = request.price
    product.category = _resolve_category(request.category_id)
    product.image_url = request.image_url
    product.save(update_fields=["name", "description", "price", "category", "image_url"])
    return product


def create_category(request: CategoryCreateRequest) -> Category:
    try:
        with transaction.atomic():
            return Category.objects.create(
                name=request.name, description=request.description,
            )
    except IntegrityError as exc:
        raise ValueError(f"Category '{request.name}' already exists.") from exc


def get_category(category_id: Any) -> Optional[Category]:
    pk = parse_uuid(category_id)
    if pk is None:
        return None
    return Category.objects.filter(pk=pk).first()


def list_categories_with_counts() -> tuple[Category, ...]:
    return tuple(
        Category.objects.annotate(product_count=Count("products")).order_by("name")
    )


def update_category(category: Category, request: CategoryCreateRequest) -> Category:
    if Category.objects.filter(name=request.name).exclude(pk=category.pk).exists():
        raise ValueError(f"Category '{request.name}' already exists.")
    category.name = request.name
    category.description = request.description
    try:
        with transaction.atomic():
            category.save(update_fields=["name", "description"])
    except IntegrityError as exc:
        raise ValueError(f"Category '{request.name}' already exists.") from exc
    return category


def serialize_category(category: Category) -> dict[str, Any]:
    data = {
        "id": str(category.pk),
        "name": category.name,
        "description": category.description,
    }
    if hasattr(category, "product_count"):
        data["product_count"] = category.product_count
    return data


def serialize_product(product: Product) -> dict[str, Any]:
    return {
        "id": str(product.pk),
        "name": product.name,
        "description": product.description,
        "price": str(product.price),
        "stock": product.stock,
        "category": None if product.category_id is None else {
            "id": str(product.category_id),
            "name": product.category.name,
        },
        "image_url": product.image_url or None,
        "rating": round(product.rating, 2),
        "review_count": product.review_count,
    }
