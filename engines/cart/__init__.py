"""
Storefront Cart Engine — Session Cart
======================================
The cart lives in the visitor's session as a list of
{"product_id", "quantity"} entries under the "cart" key. Prices are
never stored here; they are read from the catalog when the cart is
priced and snapshotted only at checkout.

Stock is checked on add (product must have units on hand) and again
at checkout against the full requested quantity.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from core.commands.rejection import ReasonCode, RejectedError, RejectionReason
from core.primitives.money import ZERO, to_money
from engines.catalog.models import Product
from engines.catalog.services import get_products_by_ids, parse_uuid

SESSION_CART_KEY = "cart"


# ── Policies ──────────────────────────────────────────────────

def product_in_stock_policy(product: Optional[Product]) -> Optional[RejectionReason]:
    if product is None:
        return RejectionReason(
            code=ReasonCode.PRODUCT_NOT_FOUND,
            message="Product not found.",
            policy_name="product_in_stock_policy",
        )
    if product.stock <= 0:
        return RejectionReason(
            code=ReasonCode.OUT_OF_STOCK,
            message=f"'{product.name}' is out of stock.",
            policy_name="product_in_stock_policy",
        )
    return None


def cart_not_empty_policy(lines: Tuple["CartLine", ...]) -> Optional[RejectionReason]:
    if not lines:
        return RejectionReason(
            code=ReasonCode.CART_EMPTY,
            message="Your cart is empty.",
            policy_name="cart_not_empty_policy",
        )
    return None


# ── Value objects ─────────────────────────────────────────────

@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int

    def __post_init__(self):
        if not self.product_id:
            raise ValueError("product_id must be non-empty.")
        if not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValueError("quantity must be a positive integer.")

    def to_session(self) -> dict:
        return {"product_id": self.product_id, "quantity": self.quantity}


@dataclass(frozen=True)
class PricedLine:
    product: Product
    quantity: int

    @property
    def unit_price(self) -> Decimal:
        return to_money(self.product.price)

    @property
    def subtotal(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)

    def to_dict(self) -> dict:
        return {
            "product_id": str(self.product.pk),
            "name": self.product.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "subtotal": str(self.subtotal),
            "stock": self.product.stock,
        }


def _line_key(product_id: Any) -> str:
    pk = parse_uuid(product_id)
    return str(pk) if pk is not None else str(product_id)


def _parse_quantity(value: Any, *, default: int = 1) -> int:
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"quantity must be an integer, got {value!r}.") from exc


# ── Cart ──────────────────────────────────────────────────────

class SessionCart:
    """Mutations write the whole list back so Django marks the session dirty."""

    def __init__(self, session: MutableMapping[str, Any]):
        self._session = session

    def lines(self) -> Tuple[CartLine, ...]:
        raw = self._session.get(SESSION_CART_KEY) or []
        lines: List[CartLine] = []
        for entry in raw:
            try:
                lines.append(CartLine(
                    product_id=str(entry["product_id"]),
                    quantity=int(entry["quantity"]),
                ))
            except (KeyError, TypeError, ValueError):
                continue
        return tuple(lines)

    def _save(self, lines: List[CartLine]) -> None:
        self._session[SESSION_CART_KEY] = [line.to_session() for line in lines]

    def add(self, product_id: Any, quantity: Any = 1) -> CartLine:
        qty = _parse_quantity(quantity)
        if qty < 1:
            raise ValueError("quantity must be >= 1.")
        pk = parse_uuid(product_id)
        product = None if pk is None else Product.objects.filter(pk=pk).first()
        reason = product_in_stock_policy(product)
        if reason is not None:
            raise RejectedError(reason)

        key = str(product.pk)
        lines = list(self.lines())
        for index, line in enumerate(lines):
            if line.product_id == key:
                lines[index] = CartLine(product_id=key, quantity=line.quantity + qty)
                self._save(lines)
                return lines[index]
        added = CartLine(product_id=key, quantity=qty)
        lines.append(added)
        self._save(lines)
        return added

    def update(self, product_id: Any, quantity: Any) -> None:
        """Set a line's quantity; zero or less removes the line."""
        qty = _parse_quantity(quantity, default=0)
        key = _line_key(product_id)
        lines = []
        for line in self.lines():
            if line.product_id != key:
                lines.append(line)
            elif qty > 0:
                lines.append(CartLine(product_id=key, quantity=qty))
        self._save(lines)

    def remove(self, product_id: Any) -> None:
        key = _line_key(product_id)
        self._save([line for line in self.lines() if line.product_id != key])

    def clear(self) -> None:
        self._session[SESSION_CART_KEY] = []

    def is_empty(self) -> bool:
        return not self.lines()

    def priced_lines(
        self, products: Optional[Mapping[str, Product]] = None,
    ) -> Tuple[PricedLine, ...]:
        """Lines whose product still exists, priced from the catalog."""
        lines = self.lines()
        if products is None:
            products = get_products_by_ids(line.product_id for line in lines)
        return tuple(
            PricedLine(product=products[line.product_id], quantity=line.quantity)
            for line in lines
            if line.product_id in products
        )

    def subtotal(self, products: Optional[Mapping[str, Product]] = None) -> Decimal:
        total = ZERO
        for line in self.priced_lines(products):
            total += line.subtotal
        return to_money(total)

    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines())
