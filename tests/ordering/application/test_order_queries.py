"""Application tests for reading orders back."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.cart.store import CartStore
from ordering.checkout.orchestrator import CheckoutService
from ordering.order.lifecycle import OrderLifecycle
from ordering.order.queries import get_order, list_orders, order_stats, search_orders
from protean.exceptions import ValidationError
from shared.actor import Actor
from shared.errors import Forbidden, NotFound


@pytest.fixture
def place(register_product, address):
    register_product("prod-a", price=1000.0, on_hand=50)

    def _place(owner_id):
        CartStore().add_item(owner_id, "prod-a", 1)
        return CheckoutService().place_order(owner_id, address, "cod")

    return _place


class TestGetOrder:
    def test_owner_sees_their_order(self, place):
        order = place("cust-001")
        assert get_order(order.id, actor=Actor(id="cust-001")).order_number == order.order_number

    def test_other_shopper_gets_not_found(self, place):
        order = place("cust-001")
        with pytest.raises(NotFound):
            get_order(order.id, actor=Actor(id="cust-002"))

    def test_staff_see_any_order(self, place):
        order = place("cust-001")
        assert get_order(order.id, actor=Actor(id="staff-1", role="admin")).id == order.id

    def test_unknown_order(self):
        with pytest.raises(NotFound):
            get_order("order-404")


class TestListOrders:
    def test_lists_only_own_orders_newest_first(self, place):
        first = place("cust-001")
        second = place("cust-001")
        place("cust-002")

        orders = list_orders("cust-001")

        assert [o.id for o in orders] == [second.id, first.id]

    def test_filter_by_status(self, place):
        first = place("cust-001")
        place("cust-001")
        OrderLifecycle().cancel(first.id, actor=Actor(id="cust-001"))

        cancelled = list_orders("cust-001", status="cancelled")

        assert [o.id for o in cancelled] == [first.id]

    def test_no_orders(self):
        assert list_orders("cust-001") == []


STAFF = Actor(id="staff-1", role="admin")
TRACKING = {"number": "TRK-9", "carrier": "Sendy"}


def _ship(order_id):
    lifecycle = OrderLifecycle()
    for status in ("confirmed", "processing", "shipped"):
        lifecycle.set_status(order_id, status, actor=STAFF, tracking_info=TRACKING if status == "shipped" else None)


class TestSearchOrders:
    def test_staff_see_every_shoppers_orders(self, place):
        first = place("cust-001")
        second = place("cust-002")

        result = search_orders(STAFF)

        assert result.total == 2
        assert [o.id for o in result.orders] == [second.id, first.id]

    def test_shoppers_are_refused(self, place):
        place("cust-001")
        with pytest.raises(Forbidden):
            search_orders(Actor(id="cust-001"))

    def test_filter_by_status_and_owner(self, place):
        first = place("cust-001")
        place("cust-001")
        place("cust-002")
        OrderLifecycle().cancel(first.id, actor=STAFF)

        assert [o.id for o in search_orders(STAFF, status="cancelled").orders] == [first.id]
        assert search_orders(STAFF, owner_id="cust-002").total == 1

    def test_pagination(self, place):
        placed = [place(f"cust-00{n}") for n in range(1, 6)]

        page_two = search_orders(STAFF, sort="placed_at", page=2, per_page=2)

        assert page_two.total == 5
        assert [o.id for o in page_two.orders] == [placed[2].id, placed[3].id]
        assert search_orders(STAFF, page=4, per_page=2).orders == []

    def test_unknown_sort_field(self, place):
        with pytest.raises(ValidationError):
            search_orders(STAFF, sort="colour")

    def test_page_size_is_bounded(self, place):
        with pytest.raises(ValidationError):
            search_orders(STAFF, per_page=500)


class TestOrderStats:
    def test_counts_and_revenue(self, place):
        shipped = place("cust-001")
        cancelled = place("cust-002")
        place("cust-003")
        _ship(shipped.id)
        OrderLifecycle().cancel(cancelled.id, actor=STAFF)

        stats = order_stats(STAFF, period="7d")

        assert stats["period"] == "7d"
        assert stats["total_orders"] == 3
        assert stats["recent_orders"] == 3
        assert stats["revenue"] == {
            "total_revenue": shipped.summary.total,
            "average_order_value": shipped.summary.total,
            "order_count": 1,
        }
        breakdown = {row["status"]: row["count"] for row in stats["status_breakdown"]}
        assert breakdown == {"cancelled": 1, "pending": 1, "shipped": 1}
        assert len(stats["daily_revenue"]) == 1
        assert stats["daily_revenue"][0]["orders"] == 1

    def test_top_products(self, place):
        place("cust-001")
        place("cust-002")

        top = order_stats(STAFF)["top_products"]

        assert top == [{"product_id": "prod-a", "name": "Test Product", "total_sold": 2, "total_revenue": 2000.0}]

    def test_orders_outside_the_period_are_not_recent(self, place):
        _ship(place("cust-001").id)

        stats = order_stats(STAFF, period="7d", now=datetime.now(UTC) + timedelta(days=30))

        assert stats["total_orders"] == 1
        assert stats["recent_orders"] == 0
        assert stats["revenue"]["order_count"] == 0

    def test_unknown_period_falls_back_to_thirty_days(self, place):
        assert order_stats(STAFF, period="fortnight")["period"] == "30d"

    def test_shoppers_are_refused(self):
        with pytest.raises(Forbidden):
            order_stats(Actor(id="cust-001"))
