"""Inventory ledger: the only way other contexts read products or move stock.

Each ledger call runs as one unit of work while holding the product's lock,
so two concurrent reservations of the last unit cannot both succeed. The
functions must be called inside the catalogue domain context.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, Integer
from protean.utils.globals import current_domain

from catalogue.domain import catalogue
from catalogue.product.product import Product
from shared.errors import NotFound
from shared.locks import KeyedLocks

logger = structlog.get_logger(__name__)

product_locks = KeyedLocks("product")


@catalogue.command(part_of="Product")
class ReserveStock:
    product_id: Identifier(required=True)
    order_id: Identifier(required=True)
    quantity: Integer(required=True, min_value=1)


@catalogue.command(part_of="Product")
class ReleaseStock:
    product_id: Identifier(required=True)
    order_id: Identifier(required=True)
    quantity: Integer(required=True, min_value=0)


@catalogue.command(part_of="Product")
class CommitStock:
    product_id: Identifier(required=True)
    order_id: Identifier(required=True)
    quantity: Integer(required=True, min_value=1)
    revenue: Float()


def load_product(repo, product_id):
    try:
        return repo.get(product_id)
    except ObjectNotFoundError:
        raise NotFound({"product_id": [f"Product {product_id} does not exist"]}, product_id=str(product_id)) from None


def _counters(product, **extra):
    return {
        "product_id": str(product.id),
        "on_hand": product.on_hand,
        "reserved": product.reserved,
        "sellable": product.sellable,
        **extra,
    }


@catalogue.command_handler(part_of=Product)
class InventoryLedgerHandler:
    @handle(ReserveStock)
    def reserve_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = load_product(repo, command.product_id)
        product.reserve(order_id=command.order_id, quantity=command.quantity)
        repo.add(product)
        return _counters(product, quantity=command.quantity)

    @handle(ReleaseStock)
    def release_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = load_product(repo, command.product_id)
        released = product.release(order_id=command.order_id, quantity=command.quantity)
        if released == 0 and product.reservation_for(command.order_id) is not None:
            logger.info(
                "Stock already released for order, nothing to do",
                product_id=command.product_id,
                order_id=command.order_id,
            )
            return _counters(product, quantity=0)
        repo.add(product)
        return _counters(product, quantity=released)

    @handle(CommitStock)
    def commit_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = load_product(repo, command.product_id)
        committed = product.commit(order_id=command.order_id, quantity=command.quantity, revenue=command.revenue)
        if committed == 0:
            logger.info(
                "Stock already committed for order, nothing to do",
                product_id=command.product_id,
                order_id=command.order_id,
            )
            return _counters(product, quantity=0)
        repo.add(product)
        return _counters(product, quantity=committed)


# ---------------------------------------------------------------------------
# Public ledger API
# ---------------------------------------------------------------------------
def find_product(product_id):
    """Return the product, or ``None`` when it does not exist."""
    try:
        return current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError:
        return None


def reserve(product_id, quantity, order_id):
    with product_locks.hold(product_id):
        return current_domain.process(
            ReserveStock(product_id=product_id, order_id=order_id, quantity=quantity),
            asynchronous=False,
        )


def release(product_id, quantity, order_id):
    with product_locks.hold(product_id):
        return current_domain.process(
            ReleaseStock(product_id=product_id, order_id=order_id, quantity=quantity),
            asynchronous=False,
        )


def commit(product_id, quantity, order_id, revenue=None):
    with product_locks.hold(product_id):
        return current_domain.process(
            CommitStock(product_id=product_id, order_id=order_id, quantity=quantity, revenue=revenue),
            asynchronous=False,
        )
