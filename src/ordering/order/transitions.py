"""Order status changes: command and handler."""

import json

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus
from shared.errors import NotFound


@ordering.command(part_of="Order")
class ChangeOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    note = String(max_length=500)
    reason = String(max_length=500)
    tracking = Text()  # JSON: tracking dict, required for shipping
    actor_id = Identifier()
    actor_role = String(max_length=50)


def load_order(repo, order_id):
    try:
        return repo.get(order_id)
    except ObjectNotFoundError:
        raise NotFound({"order_id": [f"Order {order_id} does not exist"]}, order_id=str(order_id)) from None


@ordering.command_handler(part_of=Order)
class ChangeOrderStatusHandler:
    @handle(ChangeOrderStatus)
    def change_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = load_order(repo, command.order_id)
        order.transition_to(
            command.status,
            note=command.note,
            actor_id=command.actor_id,
            actor_role=command.actor_role,
            tracking=json.loads(command.tracking) if command.tracking else None,
            reason=command.reason,
        )
        repo.add(order)
        return order.status
