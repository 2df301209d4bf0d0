"""Cart coupon management: commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.coupon_rules import get_coupon_evaluator
from ordering.cart.management import load_cart
from ordering.cart.pricing import get_pricing_policy
from ordering.domain import ordering
from shared.errors import EmptyCart


@ordering.command(part_of="ShoppingCart")
class ApplyCouponToCart:
    """Apply a coupon code to the shopper's cart."""

    owner_id = Identifier(required=True)
    code = String(required=True, max_length=50)


@ordering.command(part_of="ShoppingCart")
class RemoveCouponFromCart:
    owner_id = Identifier(required=True)
    code = String(required=True, max_length=50)


@ordering.command_handler(part_of=ShoppingCart)
class ManageCouponsHandler:
    @handle(ApplyCouponToCart)
    def apply_coupon(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = load_cart(repo, command.owner_id)
        policy = get_pricing_policy()

        if not cart.live_lines():
            raise EmptyCart({"cart": ["Coupons can only be applied to a cart with items"]})

        cart.recalculate(policy)
        quote = get_coupon_evaluator().evaluate(command.code, cart.totals.subtotal, cart.totals.shipping)
        cart.apply_coupon(quote, policy=policy)
        repo.add(cart)

    @handle(RemoveCouponFromCart)
    def remove_coupon(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = load_cart(repo, command.owner_id)
        cart.remove_coupon(command.code, policy=get_pricing_policy())
        repo.add(cart)
