"""Cart item management: commands and handler.

The product snapshot (name, SKU, price, sellable quantity) travels inside the
command; it is looked up from the catalogue before the command is dispatched.
"""

from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart, Variant
from ordering.cart.management import load_cart
from ordering.cart.pricing import get_pricing_policy
from ordering.domain import ordering
from ordering.stock.port import ProductSnapshot


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    name = String(required=True, max_length=255)
    sku = String(required=True, max_length=50)
    unit_price = Float(required=True, min_value=0.0)
    sellable = Integer(required=True)
    variant_name = String(max_length=100)
    variant_value = String(max_length=100)
    variant_price_adjustment = Float(default=0.0)


@ordering.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    sellable = Integer()
    variant_name = String(max_length=100)
    variant_value = String(max_length=100)


@ordering.command(part_of="ShoppingCart")
class RemoveFromCart:
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_name = String(max_length=100)
    variant_value = String(max_length=100)


def variant_of(command, with_adjustment=False):
    if not command.variant_name:
        return None
    return Variant(
        name=command.variant_name,
        value=command.variant_value or "",
        price_adjustment=(command.variant_price_adjustment or 0.0) if with_adjustment else 0.0,
    )


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = load_cart(repo, command.owner_id)
        cart.add_item(
            product=ProductSnapshot(
                product_id=command.product_id,
                name=command.name,
                sku=command.sku,
                price=command.unit_price,
                status="active",
                sellable=command.sellable,
            ),
            quantity=command.quantity,
            variant=variant_of(command, with_adjustment=True),
            policy=get_pricing_policy(),
        )
        repo.add(cart)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = load_cart(repo, command.owner_id)
        cart.set_quantity(
            product_id=command.product_id,
            quantity=command.quantity,
            variant=variant_of(command),
            sellable=command.sellable,
            policy=get_pricing_policy(),
        )
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = load_cart(repo, command.owner_id)
        cart.remove_item(
            product_id=command.product_id,
            variant=variant_of(command),
            policy=get_pricing_policy(),
        )
        repo.add(cart)
