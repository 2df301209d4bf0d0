"""Order creation: command and handler."""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, PaymentMethod


@ordering.command(part_of="Order")
class CreateOrder:
    order_id = Identifier(required=True)  # Chosen before stock is reserved
    owner_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    summary = Text(required=True)  # JSON: summary dict
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict, defaults to shipping
    payment_method = String(required=True, choices=PaymentMethod)
    notes = Text()
    actor_id = Identifier()
    actor_role = String(max_length=50)


def _decoded(value):
    return json.loads(value) if isinstance(value, str) else value


@ordering.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        order = Order.place(
            order_id=command.order_id,
            owner_id=command.owner_id,
            items_data=_decoded(command.items),
            summary_data=_decoded(command.summary),
            shipping_address=_decoded(command.shipping_address),
            billing_address=_decoded(command.billing_address) if command.billing_address else None,
            payment_method=command.payment_method,
            notes=command.notes,
            actor_id=command.actor_id,
            actor_role=command.actor_role,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)
