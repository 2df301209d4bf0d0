"""Product aggregate: catalogue record plus inventory counters.

``on_hand`` is the physical quantity available in the warehouse, ``reserved``
the part of it held for orders that have not been delivered yet. Only the
difference, ``sellable``, may be promised to a new order.

Each hold is recorded as a ``StockReservation`` keyed by order, which is what
makes release and commit safe to repeat.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from catalogue.domain import catalogue
from catalogue.product.events import (
    ProductRegistered,
    ProductStatusChanged,
    StockCommitted,
    StockReceived,
    StockReleased,
    StockReserved,
)
from shared.errors import InsufficientStock


class ProductStatus(Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class ReservationStatus(Enum):
    ACTIVE = "active"
    RELEASED = "released"
    COMMITTED = "committed"


@catalogue.entity(part_of="Product")
class StockReservation:
    """Units held for one order until it is delivered or cancelled."""

    order_id: Identifier(required=True)
    quantity: Integer(required=True, min_value=1)
    status: String(choices=ReservationStatus, default=ReservationStatus.ACTIVE.value)
    reserved_at: DateTime()
    settled_at: DateTime()


@catalogue.aggregate
class Product:
    name: String(required=True, max_length=255)
    sku: String(required=True, max_length=50)
    price: Float(required=True, min_value=0.0)
    currency: String(max_length=3, default="KES")
    status: String(choices=ProductStatus, default=ProductStatus.DRAFT.value)
    on_hand: Integer(default=0, min_value=0)
    reserved: Integer(default=0, min_value=0)
    total_sold: Integer(default=0, min_value=0)
    revenue: Float(default=0.0)
    reservations = HasMany(StockReservation)
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def reserved_stock_must_not_exceed_on_hand(self):
        if (self.reserved or 0) > (self.on_hand or 0):
            raise ValidationError({"reserved": ["Reserved stock cannot exceed the quantity on hand"]})

    @property
    def sellable(self) -> int:
        return max(0, (self.on_hand or 0) - (self.reserved or 0))

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE.value

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, product_id, name, sku, price, on_hand=0, status=None, currency="KES"):
        now = datetime.now(UTC)
        product = cls(
            id=product_id,
            name=name,
            sku=sku,
            price=price,
            currency=currency,
            status=status or ProductStatus.DRAFT.value,
            on_hand=on_hand,
            reserved=0,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                sku=sku,
                name=name,
                price=price,
                on_hand=on_hand,
                status=product.status,
                registered_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def change_status(self, new_status):
        target = ProductStatus(new_status)
        if target.value == self.status:
            raise ValidationError({"status": [f"Product is already {target.value}"]})

        previous = self.status
        self.status = target.value
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ProductStatusChanged(
                product_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                changed_at=self.updated_at,
            )
        )

    def receive_stock(self, quantity):
        if quantity is None or quantity <= 0:
            raise ValidationError({"quantity": ["Received quantity must be positive"]})

        self.on_hand += quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockReceived(
                product_id=str(self.id),
                quantity=quantity,
                on_hand=self.on_hand,
                received_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------
    def reservation_for(self, order_id):
        return next((r for r in self.reservations if str(r.order_id) == str(order_id)), None)

    def reserve(self, order_id, quantity):
        """Hold ``quantity`` units for ``order_id``."""
        if quantity is None or quantity <= 0:
            raise ValidationError({"quantity": ["Reserved quantity must be positive"]})
        if self.reservation_for(order_id) is not None:
            raise ValidationError({"order_id": [f"Stock for {self.sku} is already reserved for order {order_id}"]})

        sellable = self.sellable
        if sellable < quantity:
            raise InsufficientStock(
                {"quantity": [f"Only {sellable} of {self.sku} can be sold, {quantity} requested"]},
                product_id=str(self.id),
                sellable=sellable,
                requested=quantity,
            )

        now = datetime.now(UTC)
        self.add_reservations(
            StockReservation(
                order_id=order_id,
                quantity=quantity,
                status=ReservationStatus.ACTIVE.value,
                reserved_at=now,
            )
        )
        self.reserved += quantity
        self.updated_at = now

        self.raise_(
            StockReserved(
                product_id=str(self.id),
                order_id=str(order_id),
                quantity=quantity,
                reserved=self.reserved,
                sellable=self.sellable,
                reserved_at=now,
            )
        )

    def release(self, order_id, quantity):
        """Give held units back. Returns the number of units released.

        Releasing an already released reservation changes nothing. Without a
        recorded reservation the counter is decremented by ``quantity``,
        never below zero.
        """
        reservation = self.reservation_for(order_id)
        now = datetime.now(UTC)

        if reservation is None:
            released = min(quantity or 0, self.reserved)
        elif reservation.status == ReservationStatus.RELEASED.value:
            return 0
        elif reservation.status == ReservationStatus.COMMITTED.value:
            raise ValidationError({"order_id": [f"Stock of {self.sku} for order {order_id} was already committed"]})
        else:
            released = min(reservation.quantity, self.reserved)
            reservation.status = ReservationStatus.RELEASED.value
            reservation.settled_at = now

        self.reserved -= released
        self.updated_at = now

        self.raise_(
            StockReleased(
                product_id=str(self.id),
                order_id=str(order_id),
                quantity=released,
                reserved=self.reserved,
                released_at=now,
            )
        )
        return released

    def commit(self, order_id, quantity, revenue=None):
        """Turn held units into a sale. Returns the number of units committed.

        Committing twice changes nothing; committing a released reservation
        is rejected.
        """
        reservation = self.reservation_for(order_id)

        if reservation is not None:
            if reservation.status == ReservationStatus.COMMITTED.value:
                return 0
            if reservation.status == ReservationStatus.RELEASED.value:
                raise ValidationError(
                    {"order_id": [f"Stock of {self.sku} for order {order_id} was released and cannot be committed"]}
                )
            quantity = reservation.quantity
        elif quantity is None or quantity <= 0 or quantity > self.reserved:
            raise ValidationError({"order_id": [f"No reservation of {self.sku} to commit for order {order_id}"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            self.on_hand -= quantity
            self.reserved -= quantity
            self.total_sold += quantity
            self.revenue = round((self.revenue or 0.0) + (revenue if revenue is not None else quantity * self.price), 2)
            self.updated_at = now

        if reservation is not None:
            reservation.status = ReservationStatus.COMMITTED.value
            reservation.settled_at = now

        self.raise_(
            StockCommitted(
                product_id=str(self.id),
                order_id=str(order_id),
                quantity=quantity,
                on_hand=self.on_hand,
                reserved=self.reserved,
                committed_at=now,
            )
        )
        return quantity
