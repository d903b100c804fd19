"""
Tests — Session Cart
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from core.commands.rejection import ReasonCode, RejectedError
from engines.cart import SESSION_CART_KEY, SessionCart
from engines.catalog.models import Product

pytestmark = pytest.mark.django_db


class TestAdd:
    def test_merges_quantities_for_the_same_product(self, croissant):
        session = {}
        cart = SessionCart(session)
        cart.add(croissant.pk, 2)
        line = cart.add(str(croissant.pk), "3")

        assert line.quantity == 5
        assert session[SESSION_CART_KEY] == [
            {"product_id": str(croissant.pk), "quantity": 5},
        ]

    def test_default_quantity_is_one(self, croissant):
        cart = SessionCart({})
        assert cart.add(croissant.pk).quantity == 1

    def test_out_of_stock_product_rejected(self):
        sold_out = Product.objects.create(name="Macaron", price=Decimal("15000"), stock=0)
        cart = SessionCart({})
        with pytest.raises(RejectedError) as exc:
            cart.add(sold_out.pk)
        assert exc.value.code == ReasonCode.OUT_OF_STOCK
        assert cart.is_empty()

    def test_unknown_product_rejected(self):
        with pytest.raises(RejectedError) as exc:
            SessionCart({}).add("c0ffee00-0000-0000-0000-000000000000")
        assert exc.value.code == ReasonCode.PRODUCT_NOT_FOUND

    @pytest.mark.parametrize("quantity", [0, -2, "many"])
    def test_bad_quantity(self, croissant, quantity):
        with pytest.raises(ValueError):
            SessionCart({}).add(croissant.pk, quantity)


class TestEdit:
    def test_update_sets_quantity(self, croissant, baguette):
        cart = SessionCart({})
        cart.add(croissant.pk, 1)
        cart.add(baguette.pk, 1)
        cart.update(croissant.pk, 4)
        assert [(line.product_id, line.quantity) for line in cart.lines()] == [
            (str(croissant.pk), 4),
            (str(baguette.pk), 1),
        ]

    def test_update_to_zero_removes_line(self, croissant):
        cart = SessionCart({})
        cart.add(croissant.pk, 2)
        cart.update(croissant.pk, 0)
        assert cart.is_empty()

    def test_remove_and_clear(self, croissant, baguette):
        cart = SessionCart({})
        cart.add(croissant.pk)
        cart.add(baguette.pk)
        cart.remove(str(croissant.pk).upper())
        assert [line.product_id for line in cart.lines()] == [str(baguette.pk)]
        cart.clear()
        assert cart.is_empty()


class TestPricing:
    def test_subtotal_reads_current_prices(self, croissant, baguette):
        cart = SessionCart({})
        cart.add(croissant.pk, 2)
        cart.add(baguette.pk, 2)
        assert cart.subtotal() == Decimal("130000.00")
        assert cart.item_count() == 4

        Product.objects.filter(pk=croissant.pk).update(price=Decimal("30000"))
        assert cart.subtotal() == Decimal("140000.00")

    def test_deleted_products_are_skipped(self, croissant, baguette):
        cart = SessionCart({})
        cart.add(croissant.pk)
        cart.add(baguette.pk)
        baguette.delete()
        priced = cart.priced_lines()
        assert [line.product.pk for line in priced] == [croissant.pk]
        assert priced[0].to_dict()["subtotal"] == "25000.00"

    def test_malformed_session_entries_are_ignored(self, croissant):
        session = {SESSION_CART_KEY: [
            {"product_id": str(croissant.pk), "quantity": 2},
            {"product_id": "x"},
            {"quantity": 3},
            {"product_id": "y", "quantity": 0},
        ]}
        lines = SessionCart(session).lines()
        assert len(lines) == 1
        assert lines[0].quantity == 2
