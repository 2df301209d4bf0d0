"""Cart abandonment: command and handler for flagging one idle cart.

The sweep itself lives in ``CartStore.detect_abandoned``, meant to be
triggered periodically by an external scheduler through the maintenance API
endpoint. It lists candidate carts and dispatches one ``AbandonCart`` per
cart while holding that shopper's cart lock, so a shopper editing the cart
is never overwritten by a stale copy.
"""

from dataclasses import replace
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import DateTime, Float, Identifier
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.management import load_cart
from ordering.cart.pricing import get_pricing_policy
from ordering.cart.totals import ensure_utc
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


def idle_policy(idle_hours=None):
    policy = get_pricing_policy()
    if idle_hours:
        policy = replace(policy, cart_idle_hours=idle_hours)
    return policy


def abandonment_candidates() -> list[str]:
    """Owners of carts not yet flagged; idleness is checked per cart later."""
    repo = current_domain.repository_for(ShoppingCart)
    return sorted(str(cart.owner_id) for cart in repo._dao.query.filter(is_abandoned=False).all().items)


@ordering.command(part_of="ShoppingCart")
class AbandonCart:
    """Flag the cart if it still has items and has been idle past the window."""

    owner_id = Identifier(required=True)
    idle_hours = Float()  # Optional: defaults to the pricing policy's window
    as_of = DateTime()  # Optional: defaults to now


@ordering.command_handler(part_of=ShoppingCart)
class AbandonCartHandler:
    @handle(AbandonCart)
    def abandon_cart(self, command):
        as_of = ensure_utc(command.as_of) or datetime.now(UTC)
        policy = idle_policy(command.idle_hours)

        repo = current_domain.repository_for(ShoppingCart)
        cart = load_cart(repo, command.owner_id)
        if cart.is_abandoned or not cart.items or not cart.is_idle(policy, as_of):
            return False

        cart.mark_abandoned(ensure_utc(cart.last_activity_at) + policy.idle_window)
        repo.add(cart)
        logger.info(
            "Marked cart as abandoned",
            owner_id=str(cart.owner_id),
            item_count=cart.totals.item_count if cart.totals else 0,
            last_activity=str(cart.last_activity_at),
        )
        return True
