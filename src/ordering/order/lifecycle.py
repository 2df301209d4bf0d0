"""Order Lifecycle Manager: status changes and the stock movements they imply.

Cancelling releases every reservation of the order, delivering commits
them. The stock movement always happens before the new status is
persisted; if it fails the order keeps its old status and the caller may
retry. Ledger calls are idempotent per product and order, so a retry never
moves stock twice.
"""

import json

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.notifier import notify
from ordering.notifier.port import NotificationKind
from ordering.order.order import STOCK_EFFECTS, Order, OrderStatus, StockState
from ordering.order.transitions import ChangeOrderStatus, load_order
from ordering.stock import get_stock_gateway
from shared.actor import Actor
from shared.errors import NotFound, StockReleaseFailed
from shared.locks import KeyedLocks

logger = structlog.get_logger(__name__)

order_locks = KeyedLocks("order")


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value.value if isinstance(value, OrderStatus) else str(value).lower())
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status {value!r}"]}) from None


class OrderLifecycle:
    def __init__(self, stock_gateway=None):
        self._stock_gateway = stock_gateway

    @property
    def stock(self):
        return self._stock_gateway or get_stock_gateway()

    def set_status(self, order_id, new_status, note=None, actor=None, tracking_info=None, reason=None) -> Order:
        """Move the order to ``new_status``, settling reserved stock first.

        The command and the transition are validated before any stock moves,
        so a rejected change never leaves the ledger out of step with the order.
        """
        target = parse_status(new_status)
        actor = actor or Actor.system()

        with order_locks.hold(order_id):
            repo = current_domain.repository_for(Order)
            order = load_order(repo, order_id)
            order.assert_can_transition(target)
            if target is OrderStatus.SHIPPED and not tracking_info:
                raise ValidationError({"tracking": ["Tracking information is required to ship an order"]})

            command = ChangeOrderStatus(
                order_id=str(order.id),
                status=target.value,
                note=note,
                reason=reason,
                tracking=json.dumps(tracking_info, default=str) if tracking_info else None,
                actor_id=actor.id,
                actor_role=actor.role,
            )
            # Dry run on a throwaway copy, never persisted
            load_order(repo, order_id).transition_to(
                target,
                note=command.note,
                actor_id=command.actor_id,
                actor_role=command.actor_role,
                tracking=json.loads(command.tracking) if command.tracking else None,
                reason=command.reason,
            )

            effect = STOCK_EFFECTS.get(target)
            if effect is StockState.RELEASED:
                self._release_stock(order)
            elif effect is StockState.COMMITTED:
                self._commit_stock(order)

            try:
                current_domain.process(command, asynchronous=False)
            except Exception as exc:
                if effect is None:
                    raise
                logger.error(
                    "Stock settled but the new order status was not saved",
                    order_id=str(order.id),
                    order_number=order.order_number,
                    status=target.value,
                    stock_state=effect.value,
                    error=str(exc),
                )
                if effect is StockState.RELEASED:
                    raise StockReleaseFailed(
                        {
                            "status": [
                                f"Stock for order {order.order_number} was released but the cancellation "
                                "was not recorded, retry the cancellation"
                            ]
                        },
                        order_id=str(order.id),
                    ) from exc
                raise
            order = load_order(repo, order_id)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            order_number=order.order_number,
            status=order.status,
            actor_id=actor.id,
        )
        notify(
            NotificationKind.ORDER_CANCELLED if target is OrderStatus.CANCELLED else NotificationKind.ORDER_STATUS_CHANGED,
            order.owner_id,
            order_id=str(order.id),
            order_number=order.order_number,
            status=order.status,
            note=note,
        )
        return order

    def cancel(self, order_id, actor, reason=None) -> Order:
        """Cancel an order. Shoppers may only cancel their own orders."""
        order = load_order(current_domain.repository_for(Order), order_id)
        if not actor.is_privileged and str(order.owner_id) != str(actor.id):
            raise NotFound({"order_id": [f"Order {order_id} does not exist"]}, order_id=str(order_id))

        return self.set_status(
            order_id,
            OrderStatus.CANCELLED,
            note=reason or "Order cancelled",
            actor=actor,
            reason=reason,
        )

    # -------------------------------------------------------------------
    # Stock settlement
    # -------------------------------------------------------------------
    def _release_stock(self, order):
        for product_id, quantity in sorted(order.stock_quantities().items()):
            try:
                self.stock.release(product_id, quantity, str(order.id))
            except Exception as exc:
                logger.error(
                    "Failed to release reserved stock, order left unchanged",
                    order_id=str(order.id),
                    order_number=order.order_number,
                    product_id=product_id,
                    quantity=quantity,
                    error=str(exc),
                )
                raise StockReleaseFailed(
                    {"stock": [f"Could not release reserved stock for order {order.order_number}"]},
                    order_id=str(order.id),
                    product_id=product_id,
                ) from exc

    def _commit_stock(self, order):
        revenue = order.revenue_by_product()
        for product_id, quantity in sorted(order.stock_quantities().items()):
            try:
                self.stock.commit(product_id, quantity, str(order.id), revenue=revenue[product_id])
            except Exception as exc:
                logger.error(
                    "Failed to commit reserved stock, order left unchanged",
                    order_id=str(order.id),
                    order_number=order.order_number,
                    product_id=product_id,
                    quantity=quantity,
                    error=str(exc),
                )
                raise
