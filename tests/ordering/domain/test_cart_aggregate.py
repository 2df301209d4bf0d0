"""Tests for the ShoppingCart aggregate."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.cart.cart import ShoppingCart, Variant
from ordering.cart.coupon_rules import StaticCouponTable
from ordering.cart.events import (
    CartAbandoned,
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
)
from ordering.cart.pricing import PricingPolicy
from ordering.stock.port import ProductSnapshot
from shared.errors import EmptyCart, InvalidQuantity, NotFound, ProductUnavailable

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
POLICY = PricingPolicy()


def _product(product_id="prod-001", price=1000.0, sellable=10, name="Kikoy"):
    return ProductSnapshot(
        product_id=product_id,
        name=name,
        sku=f"SKU-{product_id}",
        price=price,
        status="active",
        sellable=sellable,
    )


def _cart():
    return ShoppingCart.create("cust-001", POLICY, now=NOW)


def _quote(code, subtotal, shipping):
    return StaticCouponTable().evaluate(code, subtotal=subtotal, shipping=shipping)


class TestCreate:
    def test_owner_id_is_the_cart_id(self):
        cart = _cart()
        assert str(cart.id) == "cust-001"
        assert cart.owner_id == "cust-001"

    def test_new_cart_is_empty(self):
        cart = _cart()
        assert cart.lines == []
        assert cart.totals.total == 0.0
        assert cart.is_abandoned is False


class TestAddItem:
    def test_add_new_line(self):
        cart = _cart()
        cart.add_item(_product(), 2, POLICY, now=NOW)

        assert len(cart.lines) == 1
        line = cart.lines[0]
        assert line.quantity == 2
        assert line.unit_price == 1000.0
        assert line.name == "Kikoy"
        assert cart.totals.subtotal == 2000.0
        assert cart.totals.total == 2620.0
        assert isinstance(cart._events[-1], CartItemAdded)

    def test_adding_again_grows_the_line(self):
        cart = _cart()
        cart.add_item(_product(), 2, POLICY, now=NOW)
        cart.add_item(_product(), 3, POLICY, now=NOW)

        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 5
        assert cart._events[-1].line_quantity == 5

    def test_variants_get_their_own_lines(self):
        cart = _cart()
        cart.add_item(_product(), 1, POLICY, variant=Variant("size", "M"), now=NOW)
        cart.add_item(_product(), 1, POLICY, variant=Variant("size", "L", 200.0), now=NOW)

        assert [line.variant_label for line in cart.lines] == ["size=M", "size=L"]
        assert cart.totals.subtotal == 2200.0

    def test_positions_follow_insertion_order(self):
        cart = _cart()
        cart.add_item(_product("prod-b"), 1, POLICY, now=NOW)
        cart.add_item(_product("prod-a"), 1, POLICY, now=NOW)

        assert [str(line.product_id) for line in cart.lines] == ["prod-b", "prod-a"]

    def test_zero_quantity_rejected(self):
        with pytest.raises(InvalidQuantity):
            _cart().add_item(_product(), 0, POLICY, now=NOW)

    def test_more_than_sellable_rejected(self):
        with pytest.raises(ProductUnavailable):
            _cart().add_item(_product(sellable=1), 2, POLICY, now=NOW)

    def test_combined_quantity_is_checked_against_stock(self):
        cart = _cart()
        cart.add_item(_product(sellable=3), 2, POLICY, now=NOW)

        with pytest.raises(ProductUnavailable):
            cart.add_item(_product(sellable=3), 2, POLICY, now=NOW)

        assert cart.lines[0].quantity == 2


class TestSetQuantity:
    def test_update_quantity(self):
        cart = _cart()
        cart.add_item(_product(), 1, POLICY, now=NOW)

        cart.set_quantity("prod-001", 4, POLICY, sellable=10, now=NOW)

        assert cart.lines[0].quantity == 4
        assert cart.totals.subtotal == 4000.0
        assert isinstance(cart._events[-1], CartQuantityUpdated)

    def test_zero_removes_the_line(self):
        cart = _cart()
        cart.add_item(_product(), 1, POLICY, now=NOW)

        cart.set_quantity("prod-001", 0, POLICY, now=NOW)

        assert cart.lines == []
        assert isinstance(cart._events[-1], CartItemRemoved)

    def test_missing_line(self):
        with pytest.raises(NotFound):
            _cart().set_quantity("prod-404", 1, POLICY, now=NOW)

    def test_zero_for_missing_line_is_a_no_op(self):
        cart = _cart()
        cart.add_item(_product(), 2, POLICY, now=NOW)
        events_before = len(cart._events)

        cart.set_quantity("prod-404", 0, POLICY, now=NOW)

        assert [(line.product_id, line.quantity) for line in cart.lines] == [("prod-001", 2)]
        assert len(cart._events) == events_before

    def test_more_than_sellable_rejected(self):
        cart = _cart()
        cart.add_item(_product(), 1, POLICY, now=NOW)

        with pytest.raises(ProductUnavailable):
            cart.set_quantity("prod-001", 5, POLICY, sellable=4, now=NOW)

    def test_sole_variant_line_found_without_variant(self):
        cart = _cart()
        cart.add_item(_product(), 1, POLICY, variant=Variant("size", "M"), now=NOW)

        cart.set_quantity("prod-001", 3, POLICY, now=NOW)

        assert cart.lines[0].quantity == 3


class TestRemoveAndClear:
    def test_remove_item(self):
        cart = _cart()
        cart.add_item(_product("prod-001"), 1, POLICY, now=NOW)
        cart.add_item(_product("prod-002"), 1, POLICY, now=NOW)

        cart.remove_item("prod-001", POLICY, now=NOW)

        assert [str(line.product_id) for line in cart.lines] == ["prod-002"]

    def test_remove_one_variant(self):
        cart = _cart()
        cart.add_item(_product(), 1, POLICY, variant=Variant("size", "M"), now=NOW)
        cart.add_item(_product(), 1, POLICY, variant=Variant("size", "L"), now=NOW)

        cart.remove_item("prod-001", POLICY, variant=Variant("size", "M"), now=NOW)

        assert [line.variant_label for line in cart.lines] == ["size=L"]

    def test_removing_an_absent_product_changes_nothing(self):
        cart = _cart()
        cart.add_item(_product(), 1, POLICY, now=NOW)

        cart.remove_item("prod-404", POLICY, now=NOW)

        assert len(cart.lines) == 1

    def test_clear(self):
        cart = _cart()
        cart.add_item(_product(), 2, POLICY, now=NOW)
        cart.apply_coupon(_quote("SAVE10", 2000.0, 300.0), POLICY, now=NOW)

        cart.clear(POLICY, now=NOW)

        assert cart.lines == []
        assert cart.coupon_codes == []
        assert cart.totals.total == 0.0
        assert isinstance(cart._events[-1], CartCleared)


class TestCoupons:
    def test_apply_coupon(self):
        cart = _cart()
        cart.add_item(_product(), 2, POLICY, now=NOW)

        cart.apply_coupon(_quote("SAVE10", 2000.0, 300.0), POLICY, now=NOW)

        assert cart.coupon_codes == ["SAVE10"]
        assert cart.totals.discount == 200.0
        assert cart.totals.total == 2420.0
        assert isinstance(cart._events[-1], CartCouponApplied)

    def test_reapplying_replaces_the_coupon(self):
        cart = _cart()
        cart.add_item(_product(), 2, POLICY, now=NOW)
        cart.apply_coupon(_quote("SAVE10", 2000.0, 300.0), POLICY, now=NOW)
        cart.apply_coupon(_quote("SAVE10", 2000.0, 300.0), POLICY, now=NOW)

        assert cart.coupon_codes == ["SAVE10"]

    def test_coupon_on_empty_cart_rejected(self):
        with pytest.raises(EmptyCart):
            _cart().apply_coupon(_quote("SAVE10", 0.0, 0.0), POLICY, now=NOW)

    def test_discount_follows_later_quantity_changes(self):
        cart = _cart()
        cart.add_item(_product(), 1, POLICY, now=NOW)
        cart.apply_coupon(_quote("SAVE10", 1000.0, 300.0), POLICY, now=NOW)

        cart.set_quantity("prod-001", 3, POLICY, sellable=10, now=NOW)

        assert cart.totals.discount == 300.0
        assert cart.applied_coupons[0].discount == 300.0

    def test_remove_coupon(self):
        cart = _cart()
        cart.add_item(_product(), 2, POLICY, now=NOW)
        cart.apply_coupon(_quote("SAVE10", 2000.0, 300.0), POLICY, now=NOW)

        cart.remove_coupon("save10", POLICY, now=NOW)

        assert cart.coupon_codes == []
        assert cart.totals.discount == 0.0
        assert isinstance(cart._events[-1], CartCouponRemoved)

    def test_removing_an_unapplied_coupon_changes_nothing(self):
        cart = _cart()
        cart.remove_coupon("SAVE10", POLICY, now=NOW)
        assert cart.coupon_codes == []


class TestAbandonment:
    def test_activity_after_the_idle_window_flags_the_cart(self):
        cart = _cart()
        cart.add_item(_product(), 1, POLICY, now=NOW)

        cart.add_item(_product(), 1, POLICY, now=NOW + timedelta(hours=2))

        assert cart.is_abandoned is True
        assert cart.abandoned_at == NOW + timedelta(hours=1)
        assert any(isinstance(event, CartAbandoned) for event in cart._events)

    def test_activity_within_the_window_keeps_the_cart_active(self):
        cart = _cart()
        cart.add_item(_product(), 1, POLICY, now=NOW)
        cart.add_item(_product(), 1, POLICY, now=NOW + timedelta(minutes=59))

        assert cart.is_abandoned is False

    def test_is_idle(self):
        cart = _cart()
        assert cart.is_idle(POLICY, NOW + timedelta(hours=1, seconds=1)) is True
        assert cart.is_idle(POLICY, NOW + timedelta(minutes=30)) is False

    def test_flag_is_sticky_until_cleared(self):
        cart = _cart()
        cart.mark_abandoned(NOW)
        cart.mark_abandoned(NOW + timedelta(hours=3))
        assert cart.abandoned_at == NOW

        cart.clear(POLICY, now=NOW + timedelta(hours=4))
        assert cart.is_abandoned is False
        assert cart.abandoned_at is None
