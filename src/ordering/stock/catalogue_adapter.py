"""Stock gateway backed by the in-process catalogue domain."""

from catalogue.domain import catalogue
from catalogue.product import ledger
from ordering.stock.port import ProductSnapshot, StockGateway


class CatalogueStockGateway(StockGateway):
    """Calls the catalogue ledger inside the catalogue domain context."""

    def __init__(self, domain=catalogue):
        self.domain = domain

    def find(self, product_id: str) -> ProductSnapshot | None:
        with self.domain.domain_context():
            product = ledger.find_product(product_id)
            if product is None:
                return None
            return ProductSnapshot(
                product_id=str(product.id),
                name=product.name,
                sku=product.sku,
                price=product.price,
                status=product.status,
                sellable=product.sellable,
                currency=product.currency,
            )

    def reserve(self, product_id: str, quantity: int, order_id: str) -> dict:
        with self.domain.domain_context():
            return ledger.reserve(product_id, quantity, order_id)

    def release(self, product_id: str, quantity: int, order_id: str) -> dict:
        with self.domain.domain_context():
            return ledger.release(product_id, quantity, order_id)

    def commit(self, product_id: str, quantity: int, order_id: str, revenue: float | None = None) -> dict:
        with self.domain.domain_context():
            return ledger.commit(product_id, quantity, order_id, revenue=revenue)
