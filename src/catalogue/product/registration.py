"""Catalogue administration: register products, change status, receive stock."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from catalogue.domain import catalogue
from catalogue.product.ledger import find_product, load_product, product_locks
from catalogue.product.product import Product, ProductStatus


@catalogue.command(part_of="Product")
class RegisterProduct:
    product_id: Identifier(required=True)
    name: String(required=True, max_length=255)
    sku: String(required=True, max_length=50)
    price: Float(required=True, min_value=0.0)
    currency: String(max_length=3, default="KES")
    on_hand: Integer(default=0, min_value=0)
    status: String(choices=ProductStatus, default=ProductStatus.DRAFT.value)


@catalogue.command(part_of="Product")
class ChangeProductStatus:
    product_id: Identifier(required=True)
    status: String(required=True, choices=ProductStatus)


@catalogue.command(part_of="Product")
class ReceiveStock:
    product_id: Identifier(required=True)
    quantity: Integer(required=True, min_value=1)


@catalogue.command_handler(part_of=Product)
class ManageProductHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        repo = current_domain.repository_for(Product)
        if find_product(command.product_id) is not None:
            raise ValidationError({"product_id": [f"Product {command.product_id} is already registered"]})

        product = Product.register(
            product_id=command.product_id,
            name=command.name,
            sku=command.sku,
            price=command.price,
            currency=command.currency,
            on_hand=command.on_hand,
            status=command.status,
        )
        repo.add(product)
        return str(product.id)

    @handle(ChangeProductStatus)
    def change_product_status(self, command):
        repo = current_domain.repository_for(Product)
        product = load_product(repo, command.product_id)
        product.change_status(command.status)
        repo.add(product)

    @handle(ReceiveStock)
    def receive_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = load_product(repo, command.product_id)
        product.receive_stock(command.quantity)
        repo.add(product)


def receive_stock(product_id, quantity):
    """Add units to ``on_hand`` without racing ledger calls on the same product."""
    with product_locks.hold(product_id):
        current_domain.process(ReceiveStock(product_id=product_id, quantity=quantity), asynchronous=False)
