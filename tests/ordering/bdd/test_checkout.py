"""BDD tests for checkout."""

from ordering.checkout.orchestrator import CheckoutService
from pytest_bdd import parsers, scenarios, then, when
from shared.errors import StorefrontError

scenarios("features/checkout.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('"{owner_id}" checks out'), target_fixture="order")
def check_out(owner_id, address, error):
    try:
        return CheckoutService().place_order(owner_id, address, "mpesa")
    except StorefrontError as exc:
        error["exc"] = exc
        return None


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order total is {total:g}"))
def order_total(order, total):
    assert order.summary.total == total


@then(parsers.cfparse('the order carries coupon "{code}"'))
def order_coupon(order, code):
    assert code in order.coupon_codes
