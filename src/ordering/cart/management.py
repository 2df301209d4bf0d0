"""Cart management: creating and clearing carts."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.pricing import get_pricing_policy
from ordering.domain import ordering
from shared.errors import NotFound


@ordering.command(part_of="ShoppingCart")
class CreateCart:
    owner_id = Identifier(required=True)


@ordering.command(part_of="ShoppingCart")
class ClearCart:
    """Remove every line and coupon from the shopper's cart."""

    owner_id = Identifier(required=True)
    cleared_at = DateTime()


def load_cart(repo, owner_id):
    try:
        return repo.get(owner_id)
    except ObjectNotFoundError:
        raise NotFound({"cart": [f"No cart for shopper {owner_id}"]}, owner_id=str(owner_id)) from None


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        try:
            return str(repo.get(command.owner_id).id)
        except ObjectNotFoundError:
            cart = ShoppingCart.create(owner_id=command.owner_id, policy=get_pricing_policy())
            repo.add(cart)
            return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = load_cart(repo, command.owner_id)
        cart.clear(policy=get_pricing_policy(), now=command.cleared_at)
        repo.add(cart)
