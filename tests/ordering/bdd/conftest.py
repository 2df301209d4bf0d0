"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.cart.store import CartStore
from ordering.checkout.orchestrator import CheckoutService
from ordering.order.order import Order
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, then
from shared.errors import StorefrontError


@pytest.fixture()
def error():
    """Container for the storefront error a When step ran into."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{product_id}" named "{name}" priced {price:g} with {on_hand:d} in stock'))
def stocked_product(register_product, product_id, name, price, on_hand):
    register_product(product_id, name=name, price=price, on_hand=on_hand)


@given(parsers.cfparse('"{owner_id}" has {quantity:d} of "{product_id}" in the cart'))
def cart_with_item(owner_id, quantity, product_id):
    CartStore().add_item(owner_id, product_id, quantity)


@given(parsers.cfparse('"{owner_id}" applies coupon "{code}"'))
def cart_with_coupon(owner_id, code):
    CartStore().apply_coupon(owner_id, code)


@given(parsers.cfparse('"{owner_id}" has placed an order'), target_fixture="order")
def placed_order(owner_id, address):
    return CheckoutService().place_order(owner_id, address, "mpesa")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order is "{status}"'))
def order_has_status(order, status):
    assert current_domain.repository_for(Order).get(order.id).status == status


@then(parsers.cfparse('the request is rejected with "{code}"'))
def request_rejected(error, code):
    assert isinstance(error["exc"], StorefrontError)
    assert error["exc"].code == code


@then(parsers.cfparse('"{product_id}" has {on_hand:d} on hand and {reserved:d} reserved'))
def product_counters(product_state, product_id, on_hand, reserved):
    product = product_state(product_id)
    assert product.on_hand == on_hand
    assert product.reserved == reserved


@then(parsers.cfparse('the cart of "{owner_id}" has {count:d} lines'))
def cart_line_count(owner_id, count):
    cart = current_domain.repository_for(ShoppingCart).get(owner_id)
    assert len(cart.lines) == count
