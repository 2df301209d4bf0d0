"""Checkout Orchestrator: turns a shopper's cart into a pending Order.

Flow:
    1. Load the cart under the owner's lock; an empty cart cannot check out.
    2. Re-validate every line against the catalogue.
    3. Reserve stock for all lines as one unit. Demand is summed per product
       and reserved in product-id order; on the first failure everything
       reserved so far is released again, newest first. A release that keeps
       failing is reported as StockReleaseFailed naming the held products.
    4. Snapshot the lines and freshly recomputed totals into a new Order.
       If the order cannot be created the reservations are rolled back.
    5. Clear the cart. A failure here is logged; the order stands.
    6. Tell the shopper (best effort).

A failure in steps 1-4 leaves the cart as it was and holds no stock.
"""

import json
from datetime import UTC, datetime
from uuid import uuid4

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.management import ClearCart
from ordering.cart.pricing import get_pricing_policy
from ordering.cart.store import cart_locks
from ordering.cart.totals import effective_unit_price
from ordering.notifier import notify
from ordering.notifier.port import NotificationKind
from ordering.order.creation import CreateOrder
from ordering.order.order import Order, PaymentMethod
from ordering.stock import get_stock_gateway
from shared.actor import Actor
from shared.errors import EmptyCart, InsufficientStock, NotFound, ProductUnavailable, StockReleaseFailed

logger = structlog.get_logger(__name__)

ROLLBACK_ATTEMPTS = 3


class CheckoutService:
    def __init__(self, stock_gateway=None):
        self._stock_gateway = stock_gateway

    @property
    def stock(self):
        return self._stock_gateway or get_stock_gateway()

    def place_order(
        self,
        owner_id,
        shipping_address,
        payment_method,
        billing_address=None,
        notes=None,
        actor=None,
    ) -> Order:
        actor = actor or Actor(id=str(owner_id))
        if payment_method not in {m.value for m in PaymentMethod}:
            raise ValidationError({"payment_method": [f"Unsupported payment method {payment_method!r}"]})

        with cart_locks.hold(owner_id):
            now = datetime.now(UTC)
            policy = get_pricing_policy()
            cart = self._load_cart(owner_id)
            lines = cart.live_lines(now)
            if not lines:
                raise EmptyCart({"cart": ["Cannot check out an empty cart"]}, owner_id=str(owner_id))

            demand = self._demand_by_product(lines)
            self._revalidate(lines, demand)

            order_id = str(uuid4())
            self._reserve_all(order_id, lines, demand)

            cart.recalculate(policy, now)
            try:
                current_domain.process(
                    CreateOrder(
                        order_id=order_id,
                        owner_id=owner_id,
                        items=json.dumps(self._items_snapshot(lines)),
                        summary=json.dumps(self._summary_snapshot(cart, policy)),
                        shipping_address=json.dumps(shipping_address),
                        billing_address=json.dumps(billing_address) if billing_address else None,
                        payment_method=payment_method,
                        notes=notes,
                        actor_id=actor.id,
                        actor_role=actor.role,
                    ),
                    asynchronous=False,
                )
            except Exception:
                logger.warning("Order creation failed, releasing reserved stock", owner_id=str(owner_id))
                self._rollback(order_id, sorted(demand.items()))
                raise

            try:
                current_domain.process(ClearCart(owner_id=owner_id, cleared_at=now), asynchronous=False)
            except Exception as exc:
                logger.error(
                    "Order placed but the cart could not be cleared",
                    owner_id=str(owner_id),
                    order_id=order_id,
                    error=str(exc),
                )

        order = current_domain.repository_for(Order).get(order_id)
        logger.info(
            "Order placed",
            order_id=order_id,
            order_number=order.order_number,
            owner_id=str(owner_id),
            total=order.summary.total,
        )
        notify(
            NotificationKind.ORDER_PLACED,
            owner_id,
            order_id=order_id,
            order_number=order.order_number,
            total=order.summary.total,
            currency=order.summary.currency,
        )
        return order

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def _load_cart(self, owner_id) -> ShoppingCart:
        try:
            return current_domain.repository_for(ShoppingCart).get(owner_id)
        except ObjectNotFoundError:
            raise EmptyCart({"cart": ["Cannot check out an empty cart"]}, owner_id=str(owner_id)) from None

    @staticmethod
    def _demand_by_product(lines) -> dict[str, int]:
        demand: dict[str, int] = {}
        for line in lines:
            demand[str(line.product_id)] = demand.get(str(line.product_id), 0) + line.quantity
        return demand

    @staticmethod
    def _first_line(lines, product_id):
        return next(line for line in lines if str(line.product_id) == product_id)

    def _revalidate(self, lines, demand):
        for product_id, quantity in demand.items():
            line = self._first_line(lines, product_id)
            product = self.stock.find(product_id)
            if product is None or not product.is_active:
                raise ProductUnavailable(
                    {"items": [f"{line.name} is no longer available"]},
                    product_id=product_id,
                )
            if product.sellable < quantity:
                raise ProductUnavailable(
                    {"items": [f"Only {product.sellable} of {line.name} available, {quantity} requested"]},
                    product_id=product_id,
                    available=product.sellable,
                    requested=quantity,
                )

    def _reserve_all(self, order_id, lines, demand):
        reserved = []
        for product_id, quantity in sorted(demand.items()):
            try:
                self.stock.reserve(product_id, quantity, order_id)
            except (InsufficientStock, NotFound) as exc:
                self._rollback(order_id, reserved)
                line = self._first_line(lines, product_id)
                raise ProductUnavailable(
                    {"items": [f"{line.name} is no longer available in the requested quantity"]},
                    product_id=product_id,
                    requested=quantity,
                ) from exc
            except Exception:
                self._rollback(order_id, reserved)
                raise
            reserved.append((product_id, quantity))

    def _rollback(self, order_id, reserved):
        """Release this attempt's reservations, newest first.

        Every release is tried even if an earlier one fails; stock still held
        afterwards is reported with ``StockReleaseFailed``.
        """
        stranded = [
            product_id
            for product_id, quantity in reversed(reserved)
            if not self._release_with_retry(order_id, product_id, quantity)
        ]
        if stranded:
            logger.error(
                "Checkout rollback left stock reserved for an order that was never placed",
                order_id=order_id,
                product_ids=stranded,
            )
            raise StockReleaseFailed(
                {"stock": [f"Stock for {', '.join(stranded)} is still held for abandoned checkout {order_id}"]},
                order_id=order_id,
                product_ids=stranded,
            )

    def _release_with_retry(self, order_id, product_id, quantity) -> bool:
        for attempt in range(1, ROLLBACK_ATTEMPTS + 1):
            try:
                self.stock.release(product_id, quantity, order_id)
                return True
            except Exception as exc:
                logger.warning(
                    "Failed to roll back stock reservation",
                    order_id=order_id,
                    product_id=product_id,
                    quantity=quantity,
                    attempt=attempt,
                    error=str(exc),
                )
        return False

    @staticmethod
    def _items_snapshot(lines) -> list[dict]:
        items = []
        for position, line in enumerate(lines):
            unit_price = round(effective_unit_price(line), 2)
            items.append(
                {
                    "position": position,
                    "product_id": str(line.product_id),
                    "name": line.name,
                    "sku": line.sku,
                    "unit_price": unit_price,
                    "quantity": line.quantity,
                    "line_total": round(unit_price * line.quantity, 2),
                    "variant": line.variant_label,
                }
            )
        return items

    @staticmethod
    def _summary_snapshot(cart, policy) -> dict:
        totals = cart.totals
        return {
            "subtotal": totals.subtotal,
            "shipping": totals.shipping,
            "tax": totals.tax,
            "discount": totals.discount,
            "total": totals.total,
            "currency": policy.currency,
            "coupon_codes": cart.coupon_codes,
        }
