"""Order aggregate (CQRS): the immutable result of a checkout and its lifecycle.

Items and the pricing summary are captured at checkout and never change
afterwards; ``snapshot_digest`` fingerprints them so tampering is
detectable. Everything else about an order follows from its status:

    pending → confirmed → processing → shipped → delivered → refunded
    pending / confirmed / processing → cancelled

cancelled and refunded are terminal. Asking for the current status again is
an illegal transition too, which makes retried transitions harmless.
"""

import hashlib
import json
import secrets
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from ordering.domain import ordering
from ordering.order.events import OrderCancelled, OrderPlaced, OrderStatusChanged
from shared.errors import IllegalTransition


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    MPESA = "mpesa"
    CARD = "card"
    COD = "cod"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class RefundStatus(Enum):
    NOT_APPLICABLE = "not_applicable"
    PENDING = "pending"
    PROCESSED = "processed"


class StockState(Enum):
    RESERVED = "reserved"
    RELEASED = "released"
    COMMITTED = "committed"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
}

# Reserved stock moves only on these transitions
STOCK_EFFECTS = {
    OrderStatus.CANCELLED: StockState.RELEASED,
    OrderStatus.DELIVERED: StockState.COMMITTED,
}


def generate_order_number(now=None) -> str:
    """Human readable order number: ``ORD`` + epoch milliseconds + 4 random digits."""
    now = now or datetime.now(UTC)
    return f"ORD{int(now.timestamp() * 1000)}{secrets.randbelow(10000):04d}"


def snapshot_digest(items, summary) -> str:
    """SHA-256 over the priced lines and summary captured at checkout."""
    payload = {
        "items": [
            [item["product_id"], item["sku"], item["unit_price"], item["quantity"], item.get("variant")]
            for item in sorted(items, key=lambda i: i["position"])
        ],
        "summary": [
            summary["subtotal"],
            summary["shipping"],
            summary["tax"],
            summary["discount"],
            summary["total"],
            summary["currency"],
        ],
    }
    return hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class Address:
    """Where the order goes, captured at checkout."""

    name = String(required=True, max_length=255)
    phone = String(required=True, max_length=30)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    county = String(required=True, max_length=100)
    postal_code = String(max_length=20)


@ordering.value_object(part_of="Order")
class OrderSummary:
    """Prices locked at checkout; they never change afterwards."""

    subtotal = Float(default=0.0)
    shipping = Float(default=0.0)
    tax = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="KES")
    coupon_codes = Text()  # JSON array of coupon codes


@ordering.value_object(part_of="Order")
class PaymentRecord:
    method = String(required=True, choices=PaymentMethod)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    amount = Float(default=0.0)
    currency = String(max_length=3, default="KES")
    paid_at = DateTime()
    refunded_at = DateTime()


@ordering.value_object(part_of="Order")
class TrackingInfo:
    number = String(required=True, max_length=100)
    carrier = String(max_length=100)
    url = String(max_length=500)
    estimated_delivery = DateTime()


@ordering.value_object(part_of="Order")
class Cancellation:
    reason = String(max_length=500)
    cancelled_by = Identifier()
    cancelled_at = DateTime()
    refund_status = String(choices=RefundStatus, default=RefundStatus.NOT_APPLICABLE.value)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A priced line copied from the cart at checkout."""

    position = Integer(default=0)
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    line_total = Float(required=True, min_value=0.0)
    variant = String(max_length=255)


@ordering.entity(part_of="Order")
class StatusChange:
    """One entry of the order's append-only status history."""

    position = Integer(default=0)
    status = String(required=True, choices=OrderStatus)
    note = String(max_length=500)
    actor_id = Identifier()
    actor_role = String(max_length=50)
    changed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=30)
    owner_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    summary = ValueObject(OrderSummary)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    payment = ValueObject(PaymentRecord)
    tracking = ValueObject(TrackingInfo)
    cancellation = ValueObject(Cancellation)
    history = HasMany(StatusChange)
    stock_state = String(choices=StockState, default=StockState.RESERVED.value)
    notes = Text()
    snapshot_digest = String(max_length=64)
    placed_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_id,
        owner_id,
        items_data,
        summary_data,
        shipping_address,
        payment_method,
        billing_address=None,
        notes=None,
        actor_id=None,
        actor_role=None,
    ):
        """Create a pending order from checkout data.

        Args:
            order_id: Identity chosen before stock was reserved for the order.
            items_data: List of dicts with position, product_id, name, sku,
                        unit_price, quantity, line_total, variant.
            summary_data: Dict with subtotal, shipping, tax, discount, total,
                          currency, coupon_codes.
            shipping_address: Address dict; also used for billing when
                              ``billing_address`` is omitted.
        """
        now = datetime.now(UTC)

        order = cls(
            id=order_id,
            order_number=generate_order_number(now),
            owner_id=owner_id,
            status=OrderStatus.PENDING.value,
            items=[OrderItem(**item) for item in items_data],
            summary=OrderSummary(
                subtotal=summary_data["subtotal"],
                shipping=summary_data["shipping"],
                tax=summary_data["tax"],
                discount=summary_data["discount"],
                total=summary_data["total"],
                currency=summary_data["currency"],
                coupon_codes=json.dumps(summary_data.get("coupon_codes", [])),
            ),
            shipping_address=Address(**shipping_address),
            billing_address=Address(**(billing_address or shipping_address)),
            payment=PaymentRecord(
                method=payment_method,
                status=PaymentStatus.PENDING.value,
                amount=summary_data["total"],
                currency=summary_data["currency"],
            ),
            history=[
                StatusChange(
                    position=0,
                    status=OrderStatus.PENDING.value,
                    note="Order created",
                    actor_id=actor_id or owner_id,
                    actor_role=actor_role,
                    changed_at=now,
                )
            ],
            stock_state=StockState.RESERVED.value,
            notes=notes,
            snapshot_digest=snapshot_digest(items_data, summary_data),
            placed_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                owner_id=str(owner_id),
                item_count=sum(item["quantity"] for item in items_data),
                total=summary_data["total"],
                currency=summary_data["currency"],
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def lines(self) -> list:
        return sorted(self.items, key=lambda item: item.position or 0)

    @property
    def timeline(self) -> list:
        return sorted(self.history, key=lambda entry: entry.position or 0)

    @property
    def coupon_codes(self) -> list[str]:
        if not self.summary or not self.summary.coupon_codes:
            return []
        return json.loads(self.summary.coupon_codes)

    @property
    def snapshot_intact(self) -> bool:
        items = [
            {
                "position": item.position,
                "product_id": str(item.product_id),
                "sku": item.sku,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "variant": item.variant,
            }
            for item in self.items
        ]
        summary = {
            "subtotal": self.summary.subtotal,
            "shipping": self.summary.shipping,
            "tax": self.summary.tax,
            "discount": self.summary.discount,
            "total": self.summary.total,
            "currency": self.summary.currency,
        }
        return snapshot_digest(items, summary) == self.snapshot_digest

    def stock_quantities(self) -> dict[str, int]:
        """Reserved units per product, as held at checkout."""
        quantities: dict[str, int] = {}
        for item in self.items:
            quantities[str(item.product_id)] = quantities.get(str(item.product_id), 0) + item.quantity
        return quantities

    def revenue_by_product(self) -> dict[str, float]:
        revenue: dict[str, float] = {}
        for item in self.items:
            revenue[str(item.product_id)] = round(revenue.get(str(item.product_id), 0.0) + item.line_total, 2)
        return revenue

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def can_transition_to(self, target) -> bool:
        return OrderStatus(target) in _VALID_TRANSITIONS[OrderStatus(self.status)]

    def assert_can_transition(self, target):
        """Validate that the current status allows moving to ``target``."""
        current = OrderStatus(self.status)
        target = OrderStatus(target)
        if target not in _VALID_TRANSITIONS[current]:
            allowed = ", ".join(sorted(s.value for s in _VALID_TRANSITIONS[current])) or "none"
            raise IllegalTransition(
                {"status": [f"Cannot move order {self.order_number} from {current.value} to {target.value}"]},
                order_id=str(self.id),
                current=current.value,
                target=target.value,
                allowed=allowed,
            )

    def transition_to(self, target, note=None, actor_id=None, actor_role=None, tracking=None, reason=None):
        """Move to ``target``, recording the side effects of that status.

        Stock movement is not done here: the lifecycle service settles the
        reservations first and only then persists the new status.
        """
        target = OrderStatus(target)
        self.assert_can_transition(target)

        if target is OrderStatus.SHIPPED and not tracking:
            raise ValidationError({"tracking": ["Tracking information is required to ship an order"]})

        now = datetime.now(UTC)
        previous = self.status

        if target is OrderStatus.CONFIRMED:
            self.payment = self._payment_with(status=PaymentStatus.PAID.value, paid_at=now)
        elif target is OrderStatus.SHIPPED:
            self.tracking = TrackingInfo(**tracking)
        elif target is OrderStatus.CANCELLED:
            refund_status = (
                RefundStatus.PENDING if self.payment.status == PaymentStatus.PAID.value else RefundStatus.NOT_APPLICABLE
            )
            self.cancellation = Cancellation(
                reason=reason or note,
                cancelled_by=actor_id,
                cancelled_at=now,
                refund_status=refund_status.value,
            )
        elif target is OrderStatus.REFUNDED:
            self.payment = self._payment_with(status=PaymentStatus.REFUNDED.value, refunded_at=now)

        if target in STOCK_EFFECTS:
            self.stock_state = STOCK_EFFECTS[target].value

        self.status = target.value
        self.updated_at = now
        self.add_history(
            StatusChange(
                position=len(self.history),
                status=target.value,
                note=note,
                actor_id=actor_id,
                actor_role=actor_role,
                changed_at=now,
            )
        )

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                owner_id=str(self.owner_id),
                previous_status=previous,
                new_status=target.value,
                note=note,
                actor_id=actor_id,
                changed_at=now,
            )
        )
        if target is OrderStatus.CANCELLED:
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    owner_id=str(self.owner_id),
                    reason=self.cancellation.reason,
                    cancelled_by=actor_id,
                    refund_status=self.cancellation.refund_status,
                    cancelled_at=now,
                )
            )

    def _payment_with(self, **changes):
        current = self.payment
        return PaymentRecord(
            method=current.method,
            status=changes.get("status", current.status),
            amount=current.amount,
            currency=current.currency,
            paid_at=changes.get("paid_at", current.paid_at),
            refunded_at=changes.get("refunded_at", current.refunded_at),
        )
