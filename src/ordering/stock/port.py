"""Ports to the catalogue: product lookup and the inventory ledger.

The ordering context never reads or writes catalogue records directly.
Everything goes through a ``StockGateway``, and ledger results are treated
as authoritative: ordering never computes sellable quantities itself.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProductSnapshot:
    """What the cart needs to know about a product at one moment."""

    product_id: str
    name: str
    sku: str
    price: float
    status: str
    sellable: int
    currency: str = "KES"

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class CatalogueLookup(ABC):
    @abstractmethod
    def find(self, product_id: str) -> ProductSnapshot | None:
        """Return the product snapshot, or ``None`` when the product does not exist."""
        ...


class InventoryLedger(ABC):
    @abstractmethod
    def reserve(self, product_id: str, quantity: int, order_id: str) -> dict:
        """Hold units for an order. Raises ``InsufficientStock`` when sellable < quantity."""
        ...

    @abstractmethod
    def release(self, product_id: str, quantity: int, order_id: str) -> dict:
        """Return held units. Repeating a successful release is a no-op."""
        ...

    @abstractmethod
    def commit(self, product_id: str, quantity: int, order_id: str, revenue: float | None = None) -> dict:
        """Turn held units into a sale. Repeating a successful commit is a no-op."""
        ...


class StockGateway(CatalogueLookup, InventoryLedger):
    """Both ports, served by one adapter."""
