"""Tests for the Product aggregate's stock counters and reservations."""

import pytest
from catalogue.product.events import ProductRegistered, StockCommitted, StockReleased, StockReserved
from catalogue.product.product import Product, ProductStatus, ReservationStatus
from protean.exceptions import ValidationError
from shared.errors import InsufficientStock


def _make_product(**overrides):
    defaults = {
        "product_id": "prod-001",
        "name": "Maasai Shuka",
        "sku": "SHK-001",
        "price": 1500.0,
        "on_hand": 10,
        "status": ProductStatus.ACTIVE.value,
    }
    defaults.update(overrides)
    return Product.register(**defaults)


class TestRegistration:
    def test_defaults_to_draft(self):
        product = Product.register(product_id="prod-002", name="Kikoy", sku="KKY-001", price=800.0)
        assert product.status == ProductStatus.DRAFT.value
        assert product.on_hand == 0
        assert product.reserved == 0
        assert product.currency == "KES"

    def test_raises_registered_event(self):
        product = _make_product()
        assert isinstance(product._events[-1], ProductRegistered)
        assert product._events[-1].sku == "SHK-001"

    def test_sellable_is_on_hand_minus_reserved(self):
        product = _make_product(on_hand=7)
        assert product.sellable == 7
        product.reserve("order-1", 3)
        assert product.sellable == 4


class TestStatusChanges:
    def test_change_status(self):
        product = _make_product()
        product.change_status("archived")
        assert product.status == ProductStatus.ARCHIVED.value
        assert product.is_active is False

    def test_same_status_rejected(self):
        product = _make_product()
        with pytest.raises(ValidationError):
            product.change_status("active")


class TestReceiveStock:
    def test_adds_to_on_hand(self):
        product = _make_product(on_hand=2)
        product.receive_stock(5)
        assert product.on_hand == 7

    def test_non_positive_quantity_rejected(self):
        product = _make_product()
        with pytest.raises(ValidationError):
            product.receive_stock(0)


class TestReserve:
    def test_reserve_holds_units(self):
        product = _make_product(on_hand=5)
        product.reserve("order-1", 2)

        assert product.reserved == 2
        assert product.on_hand == 5
        reservation = product.reservation_for("order-1")
        assert reservation.quantity == 2
        assert reservation.status == ReservationStatus.ACTIVE.value
        assert isinstance(product._events[-1], StockReserved)

    def test_reserve_more_than_sellable(self):
        product = _make_product(on_hand=3)
        product.reserve("order-1", 2)

        with pytest.raises(InsufficientStock) as exc:
            product.reserve("order-2", 2)

        assert exc.value.context["sellable"] == 1
        assert exc.value.context["requested"] == 2
        assert product.reserved == 2

    def test_reserve_last_unit(self):
        product = _make_product(on_hand=1)
        product.reserve("order-1", 1)
        assert product.sellable == 0

    def test_second_reservation_for_same_order_rejected(self):
        product = _make_product()
        product.reserve("order-1", 1)
        with pytest.raises(ValidationError):
            product.reserve("order-1", 1)

    def test_non_positive_quantity_rejected(self):
        product = _make_product()
        with pytest.raises(ValidationError):
            product.reserve("order-1", 0)


class TestRelease:
    def test_release_returns_units(self):
        product = _make_product(on_hand=5)
        product.reserve("order-1", 3)

        released = product.release("order-1", 3)

        assert released == 3
        assert product.reserved == 0
        assert product.reservation_for("order-1").status == ReservationStatus.RELEASED.value
        assert isinstance(product._events[-1], StockReleased)

    def test_release_twice_is_a_no_op(self):
        product = _make_product(on_hand=5)
        product.reserve("order-1", 3)
        product.reserve("order-2", 1)
        product.release("order-1", 3)

        assert product.release("order-1", 3) == 0
        assert product.reserved == 1

    def test_release_without_reservation_never_goes_negative(self):
        product = _make_product(on_hand=5)
        product.reserve("order-1", 1)

        released = product.release("unknown-order", 4)

        assert released == 1
        assert product.reserved == 0

    def test_release_of_committed_reservation_rejected(self):
        product = _make_product(on_hand=5)
        product.reserve("order-1", 2)
        product.commit("order-1", 2)

        with pytest.raises(ValidationError):
            product.release("order-1", 2)


class TestCommit:
    def test_commit_moves_units_out_of_the_warehouse(self):
        product = _make_product(on_hand=5, price=1500.0)
        product.reserve("order-1", 2)

        committed = product.commit("order-1", 2)

        assert committed == 2
        assert product.on_hand == 3
        assert product.reserved == 0
        assert product.total_sold == 2
        assert product.revenue == 3000.0
        assert product.reservation_for("order-1").status == ReservationStatus.COMMITTED.value
        assert isinstance(product._events[-1], StockCommitted)

    def test_commit_uses_order_revenue_when_given(self):
        product = _make_product(on_hand=5, price=1500.0)
        product.reserve("order-1", 2)

        product.commit("order-1", 2, revenue=2700.0)

        assert product.revenue == 2700.0

    def test_commit_twice_is_a_no_op(self):
        product = _make_product(on_hand=5)
        product.reserve("order-1", 2)
        product.commit("order-1", 2)

        assert product.commit("order-1", 2) == 0
        assert product.on_hand == 3
        assert product.total_sold == 2

    def test_commit_of_released_reservation_rejected(self):
        product = _make_product(on_hand=5)
        product.reserve("order-1", 2)
        product.release("order-1", 2)

        with pytest.raises(ValidationError):
            product.commit("order-1", 2)

    def test_commit_without_reservation_rejected(self):
        product = _make_product(on_hand=5)
        with pytest.raises(ValidationError):
            product.commit("order-1", 1)
